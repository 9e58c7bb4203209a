"""
Repository layer for data access operations.
"""

from homefinder.repositories.base import BaseRepository
from homefinder.repositories.property import PropertyRepository
from homefinder.repositories.agent import AgentRepository

__all__ = [
    "BaseRepository",
    "PropertyRepository",
    "AgentRepository",
]
