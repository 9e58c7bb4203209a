"""
Access gate for the admin area.
Every request below the admin prefix is checked; other paths pass straight through.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging

from homefinder.services.error_handler import ErrorHandlerService
from homefinder.utils.auth import CredentialVerifier
from homefinder.utils.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class AdminAuthMiddleware(BaseHTTPMiddleware):
    """Stateless per-request credential check for the admin prefix."""

    def __init__(self, app: ASGIApp, verifier: CredentialVerifier, path_prefix: str = "/admin"):
        super().__init__(app)
        self.verifier = verifier
        self.path_prefix = "/" + path_prefix.strip("/")

    def is_protected(self, path: str) -> bool:
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.is_protected(request.url.path):
            return await call_next(request)

        try:
            await self.verifier.verify(request)
        except UnauthorizedError as exc:
            logger.warning(f"Admin access denied for {request.method} {request.url.path}: {exc.detail}")
            return ErrorHandlerService.handle_api_exception(exc, request)

        return await call_next(request)
