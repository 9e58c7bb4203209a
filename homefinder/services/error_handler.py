"""
Turns exceptions into the JSON bodies clients see.

Two shapes exist: the API envelope ``{"error": {code, message, timestamp,
request_id, details}}`` and the admin form-action result
``{"success": false, ...}`` which carries the submitted values back.
"""

from typing import Dict, Any, Optional, List
from datetime import datetime, timezone
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from pydantic import ValidationError as PydanticValidationError
from homefinder.utils.exceptions import APIException, ValidationError, ConflictError
import logging
import uuid

logger = logging.getLogger(__name__)

# substring of the driver message -> text shown to the client
CONSTRAINT_MESSAGES = (
    ("unique", "Duplicate value for unique field"),
    ("foreign key", "Referenced record does not exist"),
    ("not null", "Required field cannot be empty"),
    ("check constraint", "Value does not meet validation requirements"),
)

GENERIC_FAILURE = "An unexpected error occurred. Please try again later."


class ErrorHandlerService:
    """Static helpers used by the exception handlers, middleware and admin routers."""

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Build the API error envelope.

        ``details`` and ``request_id`` are left out when empty.
        """
        body: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        if details:
            body["details"] = details
        if request_id:
            body["request_id"] = request_id
        return {"error": body}

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        rid = ErrorHandlerService._request_id(request)
        ErrorHandlerService._log(logging.WARNING, rid, request, exception.error_code, exception.detail)

        details = exception.field_errors if isinstance(exception, ValidationError) else None
        return JSONResponse(
            status_code=exception.status_code,
            content=ErrorHandlerService.format_error_response(
                exception.error_code or "API_ERROR", exception.detail, details, rid
            ),
            headers=exception.headers,
        )

    @staticmethod
    def handle_action_failure(
        exception: APIException,
        submitted: Optional[Dict[str, Any]] = None,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Failure result of an admin form action.

        Field-level messages are flattened to ``{field: message}`` and the
        submitted values (file contents excluded) are echoed under ``data``
        so the form can be shown again as it was.
        """
        rid = ErrorHandlerService._request_id(request)
        ErrorHandlerService._log(logging.WARNING, rid, request, exception.error_code, exception.detail)

        if isinstance(exception, ValidationError):
            field_errors = {
                item["field"]: item.get("message", "")
                for item in exception.field_errors if item.get("field")
            }
        elif isinstance(exception, ConflictError) and exception.field:
            field_errors = {exception.field: exception.detail}
        else:
            field_errors = {}

        return JSONResponse(
            status_code=exception.status_code,
            content={
                "success": False,
                "error": exception.detail,
                "code": exception.error_code,
                "field_errors": field_errors,
                "data": submitted or {},
                "request_id": rid,
            },
        )

    @staticmethod
    def handle_validation_error(
        exception: PydanticValidationError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Request parsing errors from FastAPI or pydantic, one entry per location."""
        rid = ErrorHandlerService._request_id(request)
        details = [
            {
                "field": " -> ".join(str(part) for part in item["loc"]),
                "message": item["msg"],
                "type": item["type"],
            }
            for item in exception.errors()
        ]
        ErrorHandlerService._log(
            logging.WARNING, rid, request, "VALIDATION_ERROR", f"{len(details)} invalid field(s)"
        )
        return JSONResponse(
            status_code=422,
            content=ErrorHandlerService.format_error_response(
                "VALIDATION_ERROR", "Request validation failed", details, rid
            ),
        )

    @staticmethod
    def handle_database_error(
        exception: SQLAlchemyError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Database failures. Driver messages are logged, never returned."""
        rid = ErrorHandlerService._request_id(request)

        if isinstance(exception, IntegrityError):
            status_code, code = 409, "INTEGRITY_ERROR"
            reason = ErrorHandlerService._constraint_reason(exception)
            message = f"Constraint violation: {reason}" if reason else "Data integrity constraint violation"
        else:
            status_code, code, message = 500, "DATABASE_ERROR", "Database operation failed"

        ErrorHandlerService._log(logging.ERROR, rid, request, code, repr(exception), exc_info=True)
        return JSONResponse(
            status_code=status_code,
            content=ErrorHandlerService.format_error_response(code, message, request_id=rid),
        )

    @staticmethod
    def handle_http_exception(
        exception: HTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        rid = ErrorHandlerService._request_id(request)
        code = f"HTTP_{exception.status_code}"
        ErrorHandlerService._log(logging.WARNING, rid, request, code, exception.detail)
        return JSONResponse(
            status_code=exception.status_code,
            content=ErrorHandlerService.format_error_response(code, str(exception.detail), request_id=rid),
            headers=getattr(exception, "headers", None),
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        rid = ErrorHandlerService._request_id(request)
        ErrorHandlerService._log(
            logging.ERROR, rid, request, type(exception).__name__, str(exception), exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content=ErrorHandlerService.format_error_response(
                "INTERNAL_SERVER_ERROR", GENERIC_FAILURE, request_id=rid
            ),
        )

    @staticmethod
    def _log(
        level: int,
        rid: str,
        request: Optional[Request],
        code: Optional[str],
        detail: Any,
        exc_info: bool = False
    ) -> None:
        path = request.url.path if request is not None else "-"
        logger.log(
            level,
            "[%s] %s on %s: %s",
            rid, code, path, detail,
            extra={"request_id": rid, "error_code": code},
            exc_info=exc_info,
        )

    @staticmethod
    def _request_id(request: Optional[Request]) -> str:
        """The middleware's id for this request, or a fresh one outside a request."""
        if request is not None:
            existing = getattr(request.state, "request_id", None)
            if existing:
                return existing
        return uuid.uuid4().hex[:8]

    @staticmethod
    def _constraint_reason(exception: IntegrityError) -> Optional[str]:
        driver_message = str(exception.orig).lower()
        for needle, reason in CONSTRAINT_MESSAGES:
            if needle in driver_message:
                return reason
        return None
