"""
Tests for the admin access gate.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from homefinder.config import get_settings
from homefinder.database import get_session_factory
from homefinder.main import create_app
from homefinder.middleware.admin_auth import AdminAuthMiddleware
from homefinder.utils.auth import StaticCredentialVerifier, parse_basic_authorization
from tests.conftest import ADMIN_PASSWORD, ADMIN_USERNAME, basic_auth_header


CHALLENGE = 'Basic realm="Admin Area", charset="UTF-8"'


class TestBasicAuthorizationParsing:
    """Authorization header decoding."""

    def test_parse_valid_header(self):
        header = basic_auth_header("admin", "pa:ss")["Authorization"]
        assert parse_basic_authorization(header) == ("admin", "pa:ss")

    @pytest.mark.parametrize("header", [
        "Bearer abc.def.ghi",
        "Basic",
        "Basic !!!not-base64!!!",
        "Basic YWRtaW4=",  # "admin" without a colon
    ])
    def test_parse_malformed_header(self, header):
        with pytest.raises(ValueError):
            parse_basic_authorization(header)

    def test_protected_paths(self):
        middleware = AdminAuthMiddleware(app=None, verifier=StaticCredentialVerifier("a", "b"), path_prefix="admin/")

        assert middleware.is_protected("/admin")
        assert middleware.is_protected("/admin/properties/123")
        assert not middleware.is_protected("/administrator")
        assert not middleware.is_protected("/api/v1/properties/search")


class TestAdminGate:
    """Requests below the admin prefix need valid credentials."""

    @pytest.mark.asyncio
    async def test_missing_header_gets_challenge(self, async_client: AsyncClient):
        response = await async_client.get("/admin/agents")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == CHALLENGE
        body = response.json()
        assert body["error"]["code"] == "UNAUTHORIZED"
        assert body["error"]["message"] == "Not authorized"
        assert body["error"]["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["Bearer token", "Basic %%%"])
    async def test_malformed_header(self, async_client: AsyncClient, header):
        response = await async_client.get("/admin/agents", headers={"Authorization": header})

        assert response.status_code == 401
        assert "WWW-Authenticate" not in response.headers
        assert response.json()["error"]["message"] == "Invalid auth header"

    @pytest.mark.asyncio
    async def test_wrong_credentials(self, async_client: AsyncClient):
        response = await async_client.get(
            "/admin/agents", headers=basic_auth_header(ADMIN_USERNAME, "wrong-password")
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_correct_credentials(self, async_client: AsyncClient, admin_headers):
        response = await async_client.get("/admin/agents", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"agents": [], "error": None}

    @pytest.mark.asyncio
    async def test_mutations_are_gated_too(self, async_client: AsyncClient):
        response = await async_client.post("/admin/agents", data={"name": "X", "email": "x@example.com"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_public_routes_are_open(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/agents")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unconfigured_credentials_reject_everything(self, test_settings, session_factory):
        settings = test_settings.model_copy(update={"admin_username": None, "admin_password": None})
        app = create_app(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_session_factory] = lambda: session_factory

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get(
                "/admin/agents", headers=basic_auth_header(ADMIN_USERNAME, ADMIN_PASSWORD)
            )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"
