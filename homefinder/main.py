"""
Application factory for the Homefinder listing service.
"""

from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
import logging

from homefinder.config import Settings, get_settings
from homefinder.database import get_session_factory, test_database_connection, close_db_connection
from homefinder.routers import (
    properties_router,
    home_router,
    admin_properties_router,
    admin_agents_router,
)
from homefinder.utils.auth import StaticCredentialVerifier
from homefinder.utils.exceptions import APIException
from homefinder.services.error_handler import ErrorHandlerService
from homefinder.middleware.validation import ValidationMiddleware
from homefinder.middleware.admin_auth import AdminAuthMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DESCRIPTION = """
Listings backend for a real-estate agency.

* **Public**: landing page, search with filters and paging, listing detail by slug,
  saved listings, agent directory, contact and inquiry emails
* **Admin** (HTTP Basic): property and agent management with image uploads
"""

TAGS = [
    {"name": "Home", "description": "Landing page, agent directory and contact form"},
    {"name": "Properties", "description": "Property search, detail and inquiries"},
    {"name": "Admin: Properties", "description": "Property management"},
    {"name": "Admin: Agents", "description": "Agent management"},
    {"name": "Health", "description": "Liveness and database checks"},
]

# exception type -> ErrorHandlerService method
ERROR_HANDLERS = (
    (APIException, ErrorHandlerService.handle_api_exception),
    (RequestValidationError, ErrorHandlerService.handle_validation_error),
    (PydanticValidationError, ErrorHandlerService.handle_validation_error),
    (SQLAlchemyError, ErrorHandlerService.handle_database_error),
    (HTTPException, ErrorHandlerService.handle_http_exception),
    (Exception, ErrorHandlerService.handle_unexpected_error),
)


def _register_error_handlers(app: FastAPI) -> None:
    for exc_type, handle in ERROR_HANDLERS:
        async def handler(request: Request, exc: Exception, handle=handle):
            return handle(exc, request)
        app.add_exception_handler(exc_type, handler)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Wire routers, middleware and media serving for ``settings`` (defaults to the environment)."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s %s starting (%s)", settings.app_name, settings.app_version, settings.environment)
        if not settings.admin_configured:
            logger.warning("ADMIN_USERNAME/ADMIN_PASSWORD unset: all admin requests will get 401")
        if not settings.email_configured:
            logger.warning("RESEND_API_KEY unset: contact and inquiry submissions will fail")
        if not await test_database_connection():
            logger.error("Database unreachable at startup")

        yield

        await close_db_connection()
        logger.info("%s stopped", settings.app_name)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=DESCRIPTION,
        openapi_tags=TAGS,
        lifespan=lifespan,
    )

    # add_middleware wraps, so the last one added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(
        AdminAuthMiddleware,
        verifier=StaticCredentialVerifier(
            settings.admin_username, settings.admin_password, realm=settings.admin_realm
        ),
        path_prefix=settings.admin_path_prefix,
    )
    app.add_middleware(
        ValidationMiddleware,
        max_request_size=settings.max_request_size,
        enable_request_logging=settings.debug,
    )

    for router in (home_router, properties_router):
        app.include_router(router, prefix=settings.api_v1_prefix)
    for router in (admin_properties_router, admin_agents_router):
        app.include_router(router, prefix=settings.admin_path_prefix)

    if settings.media_backend == "local":
        app.mount(settings.media_url, StaticFiles(directory=settings.upload_dir, check_dir=False), name="media")

    _register_error_handlers(app)

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "docs": "/docs",
            "api_prefix": settings.api_v1_prefix,
            "admin_prefix": settings.admin_path_prefix,
        }

    @app.get("/health", tags=["Health"])
    async def health_check(session_factory: async_sessionmaker = Depends(get_session_factory)):
        """503 when the database cannot answer a trivial query."""
        if not await test_database_connection(session_factory):
            raise HTTPException(status_code=503, detail="Database connection failed")

        return {
            "status": "healthy",
            "database": "connected",
            "email": "configured" if settings.email_configured else "not configured",
            "media_backend": settings.media_backend,
            "version": settings.app_version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    _settings = get_settings()
    uvicorn.run("homefinder.main:app", host=_settings.host, port=_settings.port, reload=_settings.debug)
