"""
Request middleware: request ids, body size limit and access logging.
"""

from typing import Callable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from homefinder.services.error_handler import ErrorHandlerService
from homefinder.utils.exceptions import APIException, PayloadTooLargeError, ValidationError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class ValidationMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with a short id, refuses bodies above the configured
    limit before any handler reads them, and turns unhandled errors into the
    standard 500 envelope.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 25 * 1024 * 1024,
        enable_request_logging: bool = True,
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.log_requests = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.request_id = rid = uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            self._check_body_size(request.headers.get("content-length"))
        except APIException as exc:
            logger.warning("[%s] rejected %s %s: %s", rid, request.method, request.url.path, exc.detail)
            return self._tag(ErrorHandlerService.handle_api_exception(exc, request), rid)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "[%s] unhandled %s on %s %s", rid, type(exc).__name__, request.method, request.url.path
            )
            response = ErrorHandlerService.handle_unexpected_error(exc, request)

        if self.log_requests:
            self._access_log(request, response, rid, time.perf_counter() - started)

        return self._tag(response, rid)

    def _check_body_size(self, declared: Optional[str]) -> None:
        """
        Compare the declared Content-Length with the limit.

        Raises:
            PayloadTooLargeError: body is larger than allowed
            ValidationError: header is not an integer
        """
        if not declared:
            return
        try:
            size = int(declared)
        except ValueError:
            raise ValidationError("Invalid content-length header")
        if size > self.max_request_size:
            raise PayloadTooLargeError(size, self.max_request_size)

    @staticmethod
    def _tag(response: Response, rid: str) -> Response:
        response.headers[REQUEST_ID_HEADER] = rid
        return response

    @staticmethod
    def _remote_addr(request: Request) -> str:
        # first hop wins when behind a proxy
        chain = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip")
        if chain:
            return chain.split(",", 1)[0].strip()
        return request.client.host if request.client else "-"

    def _access_log(self, request: Request, response: Response, rid: str, elapsed: float) -> None:
        logger.info(
            "[%s] %s %s -> %d in %.1fms",
            rid,
            request.method,
            request.url.path,
            response.status_code,
            elapsed * 1000,
            extra={
                "request_id": rid,
                "remote_addr": self._remote_addr(request),
                "query": request.url.query,
                "agent": request.headers.get("user-agent", "-"),
            },
        )
