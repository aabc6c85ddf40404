"""
Pytest configuration and fixtures for gateway tests.

Provides fixtures for:
- A scripted Moodle site served through httpx.MockTransport
- Moodle client, identity store and pending attempt store
- The Moodle authentication provider wired to all of the above
"""

import os

os.environ.setdefault("MOODLE_URL", "https://moodle.test")

from typing import Any, AsyncGenerator, Callable, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio

from auth_gateway.core.auth.moodle import MoodlePasswordAuthProvider
from auth_gateway.infrastructure.auth.attempt_store import MemoryPendingAttemptStore
from auth_gateway.infrastructure.identity.store import MemoryIdentityStore
from auth_gateway.infrastructure.moodle.client import REST_ENDPOINT, TOKEN_ENDPOINT, MoodleClient

MOODLE_URL = "https://moodle.test"

StubReply = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class MoodleStub:
    """Scripted Moodle site

    Each reply is either (status, body) or a callable taking the request.
    A str body is sent verbatim, anything else is sent as JSON.
    """

    def __init__(self):
        self.token_reply: StubReply = (200, {"token": "T1"})
        self.site_info_reply: StubReply = (200, {"userid": 7, "username": "bob"})
        self.users_reply: StubReply = (
            200,
            [{"fullname": "Bob Jones", "email": "bob@x.org", "username": "bob"}],
        )
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == TOKEN_ENDPOINT:
            reply = self.token_reply
        elif request.url.path == REST_ENDPOINT:
            function = request.url.params.get("wsfunction")
            if function == "core_webservice_get_site_info":
                reply = self.site_info_reply
            elif function == "core_user_get_users_by_field":
                reply = self.users_reply
            else:
                return httpx.Response(404, text="unknown function")
        else:
            return httpx.Response(404, text="not found")

        if callable(reply):
            return reply(request)

        status, body = reply
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def calls(self, function: Optional[str] = None) -> List[httpx.Request]:
        """Requests received, optionally filtered by wsfunction"""
        if function is None:
            return list(self.requests)
        return [r for r in self.requests if r.url.params.get("wsfunction") == function]


@pytest.fixture
def moodle_stub() -> MoodleStub:
    """Create scripted Moodle site"""
    return MoodleStub()


@pytest_asyncio.fixture
async def moodle_client(moodle_stub: MoodleStub) -> AsyncGenerator[MoodleClient, None]:
    """Create Moodle client talking to the stub"""
    client = MoodleClient(MOODLE_URL, transport=httpx.MockTransport(moodle_stub.handler))
    yield client
    await client.aclose()


@pytest.fixture
def identity_store() -> MemoryIdentityStore:
    """Create empty in-memory identity store"""
    return MemoryIdentityStore()


@pytest.fixture
def attempt_store() -> MemoryPendingAttemptStore:
    """Create in-memory pending attempt store"""
    return MemoryPendingAttemptStore(ttl_seconds=300, max_entries=100)


@pytest.fixture
def auto_bureaucrats() -> dict:
    """Bureaucrat policy used by the provider fixture"""
    return {}


@pytest.fixture
def provider(
    moodle_client: MoodleClient,
    identity_store: MemoryIdentityStore,
    attempt_store: MemoryPendingAttemptStore,
    auto_bureaucrats: dict,
) -> MoodlePasswordAuthProvider:
    """Create Moodle provider wired to the stub site"""
    return MoodlePasswordAuthProvider(
        moodle_url=MOODLE_URL,
        identity_store=identity_store,
        auto_bureaucrats=auto_bureaucrats,
        attempt_store=attempt_store,
        client=moodle_client,
    )


@pytest_asyncio.fixture
async def client(provider: MoodlePasswordAuthProvider) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create test HTTP client with the provider dependency overridden"""
    from auth_gateway.core.auth.factory import get_auth_provider
    from auth_gateway.main import app

    async def override_get_auth_provider():
        return provider

    app.dependency_overrides[get_auth_provider] = override_get_auth_provider

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
