"""
Custom exception classes for the listing service.
Provides structured error handling with appropriate HTTP status codes.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class ValidationError(APIException):
    """Missing or malformed user input; field_errors carries per-field messages."""

    def __init__(
        self,
        detail: str,
        field_errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field_errors = field_errors or []

    @property
    def fields(self) -> List[str]:
        return [error["field"] for error in self.field_errors if error.get("field")]


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )
        self.resource = resource


class ConflictError(APIException):
    """Unique value already used by another record."""

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT"
        )
        self.field = field


class UnauthorizedError(APIException):
    """Authentication required exception."""

    def __init__(self, detail: str = "Authentication required", challenge: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": challenge} if challenge else None
        )


class UploadError(APIException):
    """The image host rejected or failed an upload."""

    def __init__(self, detail: str, filename: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code="UPLOAD_FAILED"
        )
        self.filename = filename


class DeliveryError(APIException):
    """
    Email delivery failure.

    error_code distinguishes EMAIL_NOT_CONFIGURED, DELIVERY_FAILED and
    DELIVERY_TRANSPORT_ERROR.
    """

    def __init__(
        self,
        detail: str,
        error_code: str = "DELIVERY_FAILED",
        status_code: int = status.HTTP_502_BAD_GATEWAY
    ):
        super().__init__(
            status_code=status_code,
            detail=detail,
            error_code=error_code
        )

    @classmethod
    def not_configured(cls) -> "DeliveryError":
        return cls(
            "Email service is not configured.",
            error_code="EMAIL_NOT_CONFIGURED",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    @classmethod
    def transport(cls, detail: str = "An unexpected error occurred while sending the message.") -> "DeliveryError":
        return cls(detail, error_code="DELIVERY_TRANSPORT_ERROR")


class PersistenceError(APIException):
    """Generic data-store failure. Not retried."""

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="PERSISTENCE_ERROR"
        )


class PayloadTooLargeError(APIException):
    """Request body exceeds the configured limit."""

    def __init__(self, size: int, max_size: int):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Request size {size} bytes exceeds maximum allowed size {max_size} bytes",
            error_code="PAYLOAD_TOO_LARGE"
        )
