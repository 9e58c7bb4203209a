"""
Test configuration and fixtures for the listing service.
Provides a per-test SQLite database, service fixtures, a recording email transport,
an ASGI test client and test data factories.
"""

import pytest
import base64
import io
import json
import uuid
from typing import AsyncGenerator, List, Optional

import httpx
from httpx import AsyncClient, ASGITransport
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession

from homefinder.config import Settings, get_settings
from homefinder.database import build_engine, build_session_factory, create_tables, get_session_factory
from homefinder.main import create_app
from homefinder.models.agent import Agent
from homefinder.models.property import Property
from homefinder.repositories.agent import AgentRepository
from homefinder.repositories.property import PropertyRepository
from homefinder.services.agent import AgentService
from homefinder.services.email import ResendEmailClient
from homefinder.services.media import build_media_uploader, MediaUploader
from homefinder.services.notification import NotificationService
from homefinder.services.property import PropertyService
from homefinder.utils.dependencies import get_email_client


ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "s3cret-pass"


def make_image_bytes(color: str = "red", image_format: str = "PNG", size=(8, 8)) -> bytes:
    """Encode a tiny solid-colour image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


def basic_auth_header(username: str, password: str) -> dict:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


class EmailOutbox:
    """Records requests sent to the email provider and plays back a configured outcome."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.raise_transport_error = False
        # replaces the provider's usual JSON body when set
        self.response_json = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.raise_transport_error:
            raise httpx.ConnectError("connection refused", request=request)
        self.requests.append(request)
        if self.response_json is not None:
            return httpx.Response(self.status_code, json=self.response_json)
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"message": "Provider rejected the message"})
        return httpx.Response(200, json={"id": f"email_{len(self.requests)}"})

    @property
    def payloads(self) -> List[dict]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings for an isolated test run."""
    return Settings(
        _env_file=None,
        environment="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        site_url="https://homes.example",
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        media_backend="local",
        upload_dir=str(tmp_path / "uploads"),
        resend_api_key="re_test_key",
        email_from="Homefinder <noreply@homes.example>",
        email_recipients=["office@homes.example"],
    )


@pytest.fixture
async def test_engine(test_settings: Settings):
    """Create a fresh schema for every test."""
    engine = build_engine(test_settings.database_url)
    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


# Repository and service fixtures
@pytest.fixture
def property_repository(db_session: AsyncSession) -> PropertyRepository:
    return PropertyRepository(db_session)


@pytest.fixture
def agent_repository(db_session: AsyncSession) -> AgentRepository:
    return AgentRepository(db_session)


@pytest.fixture
def media_uploader(test_settings: Settings) -> MediaUploader:
    return build_media_uploader(test_settings)


@pytest.fixture
def property_service(db_session: AsyncSession, media_uploader: MediaUploader, test_settings: Settings) -> PropertyService:
    """Create a property service instance."""
    return PropertyService(db_session, uploader=media_uploader, settings=test_settings)


@pytest.fixture
def agent_service(db_session: AsyncSession, media_uploader: MediaUploader, test_settings: Settings) -> AgentService:
    """Create an agent service instance."""
    return AgentService(db_session, uploader=media_uploader, settings=test_settings)


@pytest.fixture
def email_outbox() -> EmailOutbox:
    return EmailOutbox()


@pytest.fixture
def email_client(email_outbox: EmailOutbox, test_settings: Settings) -> ResendEmailClient:
    return ResendEmailClient(
        api_key=test_settings.resend_api_key,
        api_url=test_settings.resend_api_url,
        transport=httpx.MockTransport(email_outbox.handler),
    )


@pytest.fixture
def notification_service(email_client: ResendEmailClient, test_settings: Settings) -> NotificationService:
    return NotificationService(email_client, settings=test_settings)


# Application fixtures
@pytest.fixture
def app(test_settings: Settings, session_factory, email_client: ResendEmailClient):
    """Application wired to the test database, settings and email transport."""
    application = create_app(test_settings)
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_session_factory] = lambda: session_factory
    application.dependency_overrides[get_email_client] = lambda: email_client
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers() -> dict:
    return basic_auth_header(ADMIN_USERNAME, ADMIN_PASSWORD)


# Test data factories
class AgentFactory:
    """Factory for creating test agents."""

    @staticmethod
    def create_agent_data(name: str = "Test Agent", email: Optional[str] = None, **overrides) -> dict:
        data = {
            "name": name,
            "email": email or f"agent{uuid.uuid4().hex[:8]}@example.com",
            "phone": "+216 20 000 000",
            "image_url": None,
        }
        data.update(overrides)
        return data

    @staticmethod
    async def create_agent(session: AsyncSession, **kwargs) -> Agent:
        return await AgentRepository(session).create(AgentFactory.create_agent_data(**kwargs))


class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def create_property_data(
        title: str = "Test Property",
        slug: Optional[str] = None,
        address: str = "Test Street, Test City",
        price: int = 250000,
        **overrides
    ) -> dict:
        data = {
            "title": title,
            "slug": slug or f"test-property-{uuid.uuid4().hex[:8]}",
            "address": address,
            "price": price,
            "beds": 3,
            "baths": 2,
            "area": 120,
            "property_type": "Apartment",
            "gallery_images": [],
            "features": [],
            "is_featured": False,
        }
        data.update(overrides)
        return data

    @staticmethod
    async def create_property(session: AsyncSession, **kwargs) -> Property:
        return await PropertyRepository(session).create(PropertyFactory.create_property_data(**kwargs))


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()
