"""
Integration tests for authentication endpoints.
"""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from auth_gateway.api.routes import auth as auth_routes
from auth_gateway.config.settings import Settings
from auth_gateway.domain.models import LocalIdentity

pytestmark = pytest.mark.integration


class TestLoginEndpoint:
    """Test POST /api/v1/auth/login endpoint."""

    @pytest.mark.asyncio
    async def test_login_pass(self, client: AsyncClient):
        """Test login with credentials Moodle accepts."""
        response = await client.post(
            "/api/v1/auth/login", json={"username": "bob", "password": "secret"}
        )

        assert response.status_code == 200
        assert response.json() == {"status": "pass", "username": "bob"}

    @pytest.mark.asyncio
    async def test_login_rejected_abstains(self, client: AsyncClient, moodle_stub):
        """Test that a Moodle rejection is reported as abstain without detail."""
        moodle_stub.token_reply = (200, {"error": "Invalid login, please try again"})

        response = await client.post(
            "/api/v1/auth/login", json={"username": "bob", "password": "wrong"}
        )

        assert response.status_code == 200
        assert response.json() == {"status": "abstain", "username": None}
        assert "Invalid login" not in response.text

    @pytest.mark.asyncio
    async def test_login_moodle_unreachable_abstains(self, client: AsyncClient, moodle_stub):
        """Test that transport failures are also plain abstain."""
        moodle_stub.token_reply = (500, "Internal Server Error")

        response = await client.post(
            "/api/v1/auth/login", json={"username": "bob", "password": "secret"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "abstain"

    @pytest.mark.asyncio
    async def test_login_empty_password_abstains(self, client: AsyncClient, moodle_stub):
        """Test that no remote call is made without a password."""
        response = await client.post("/api/v1/auth/login", json={"username": "bob"})

        assert response.status_code == 200
        assert response.json()["status"] == "abstain"
        assert moodle_stub.requests == []

    @pytest.mark.asyncio
    async def test_login_missing_username_abstains(self, client: AsyncClient, moodle_stub):
        """Test that a missing username abstains without a remote call."""
        response = await client.post("/api/v1/auth/login", json={"password": "secret"})

        assert response.status_code == 200
        assert response.json()["status"] == "abstain"
        assert moodle_stub.requests == []

    @pytest.mark.asyncio
    async def test_login_overlong_username_abstains(self, client: AsyncClient, moodle_stub):
        """Test that an unusable username still answers 200 with abstain."""
        response = await client.post(
            "/api/v1/auth/login", json={"username": "b" * 300, "password": "secret"}
        )

        assert response.status_code == 200
        assert response.json() == {"status": "abstain", "username": None}
        assert moodle_stub.requests == []


class TestPostAuthenticationEndpoint:
    """Test POST /api/v1/auth/post-authentication endpoint."""

    @pytest.mark.asyncio
    async def test_post_authentication_applies_profile(self, client: AsyncClient, identity_store):
        """Test that a committed login pulls real name and email from Moodle."""
        await client.post("/api/v1/auth/login", json={"username": "bob", "password": "secret"})

        response = await client.post(
            "/api/v1/auth/post-authentication", json={"username": "bob", "status": "pass"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "bob"
        assert [d["type"] for d in data["applied"]] == ["SetRealName", "SetEmail", "ConfirmEmail"]
        assert data["applied"][1]["value"] == "bob@x.org"

        identity = await identity_store.load_identity("bob")
        assert identity.real_name == "Bob Jones"
        assert identity.email_confirmed is True

    @pytest.mark.asyncio
    async def test_post_authentication_real_name_collision(
        self, client: AsyncClient, identity_store
    ):
        """Test that a taken real name gets a numeric suffix."""
        await identity_store.save(LocalIdentity(username="robert", real_name="Bob Jones"))
        await client.post("/api/v1/auth/login", json={"username": "bob", "password": "secret"})

        response = await client.post(
            "/api/v1/auth/post-authentication", json={"username": "bob", "status": "pass"}
        )

        assert response.json()["applied"][0] == {
            "type": "SetRealName",
            "value": "Bob Jones 2",
            "group": None,
        }

    @pytest.mark.asyncio
    async def test_post_authentication_without_login(self, client: AsyncClient):
        """Test that lost state applies nothing."""
        response = await client.post(
            "/api/v1/auth/post-authentication", json={"username": "bob", "status": "pass"}
        )

        assert response.status_code == 200
        assert response.json()["applied"] == []

    @pytest.mark.asyncio
    async def test_post_authentication_failed_login(self, client: AsyncClient):
        """Test that a failed login applies nothing."""
        await client.post("/api/v1/auth/login", json={"username": "bob", "password": "secret"})

        response = await client.post(
            "/api/v1/auth/post-authentication", json={"username": "bob", "status": "fail"}
        )

        assert response.json()["applied"] == []

    @pytest.mark.asyncio
    async def test_post_authentication_invalid_status(self, client: AsyncClient):
        """Test status validation."""
        response = await client.post(
            "/api/v1/auth/post-authentication", json={"username": "bob", "status": "maybe"}
        )

        assert response.status_code == 422


class TestRequestShapeEndpoint:
    """Test GET /api/v1/auth/requests/{action} endpoint."""

    @pytest.mark.asyncio
    async def test_login_needs_password(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/requests/login")

        assert response.status_code == 200
        assert response.json() == {
            "action": "login",
            "requests": [
                {"type": "PasswordAuthenticationRequest", "fields": ["username", "password"]}
            ],
        }

    @pytest.mark.asyncio
    async def test_create_needs_nothing(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/requests/create")

        assert response.json()["requests"] == []

    @pytest.mark.asyncio
    async def test_unknown_action(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/requests/teleport")

        assert response.status_code == 422


class TestAccountsAndHealth:
    """Test account creation and health endpoints."""

    @pytest.mark.asyncio
    async def test_account_creation_not_implemented(self, client: AsyncClient, moodle_stub):
        response = await client.post(
            "/api/v1/auth/accounts", json={"username": "carol", "password": "secret"}
        )

        assert response.status_code == 501
        assert moodle_stub.requests == []

    @pytest.mark.asyncio
    async def test_auth_health(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/health")

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "MoodlePasswordAuthProvider"
        assert data["attempt_store"] == "MemoryPendingAttemptStore"
        assert data["identity_store"] == "MemoryIdentityStore"
        assert data["redis"] == "not_configured"

    @pytest.mark.asyncio
    async def test_auth_health_redis_unhealthy(self, client: AsyncClient, monkeypatch):
        """Test that a failing Redis ping degrades the health status."""
        redis_client = AsyncMock()
        redis_client.health_check = AsyncMock(return_value=False)
        monkeypatch.setattr(
            auth_routes,
            "get_settings",
            lambda: Settings(
                moodle_url="https://moodle.test", attempt_store_backend="redis", _env_file=None
            ),
        )
        monkeypatch.setattr(auth_routes, "get_redis_client", AsyncMock(return_value=redis_client))

        response = await client.get("/api/v1/auth/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["redis"] == "unhealthy"
        redis_client.health_check.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_root_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
