"""
Middleware package.
Provides request validation/logging and the admin access gate.
"""

from .validation import ValidationMiddleware
from .admin_auth import AdminAuthMiddleware

__all__ = [
    "ValidationMiddleware",
    "AdminAuthMiddleware",
]
