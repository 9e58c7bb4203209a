"""
Service layer for business logic implementation.
Contains the listing workflows, media uploads, notifications and error handling.
"""

from .property import PropertyService
from .agent import AgentService
from .notification import NotificationService
from .error_handler import ErrorHandlerService

__all__ = [
    "PropertyService",
    "AgentService",
    "NotificationService",
    "ErrorHandlerService"
]
