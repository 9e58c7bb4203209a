"""
Utility modules for the listing service.
"""

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    UnauthorizedError,
    ConflictError,
    UploadError,
    DeliveryError,
    PersistenceError,
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    "APIException",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ConflictError",
    "UploadError",
    "DeliveryError",
    "PersistenceError",
]
