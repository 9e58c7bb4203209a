"""
Database models for the listing service.
Includes Property and Agent with their one-to-many relationship.
"""

from homefinder.models.agent import Agent
from homefinder.models.property import Property

# Export all models for easy importing
__all__ = [
    "Agent",
    "Property",
]
