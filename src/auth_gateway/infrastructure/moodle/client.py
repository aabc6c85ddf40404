"""Moodle Web-Service HTTP Client

Provides the async HTTP transport used for every call to the remote Moodle
site: one shared httpx client with a fixed user agent, a bounded redirect
count, mandatory TLS verification and a bounded timeout.
"""

import json
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "/login/token.php"
REST_ENDPOINT = "/webservice/rest/server.php"


class MoodleTransportError(Exception):
    """Remote call failed before a usable 200 response was received."""

    def __init__(self, endpoint: str, detail: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{endpoint}: {detail}")


class MoodleMalformedResponse(Exception):
    """Response body could not be decoded as JSON."""

    def __init__(self, endpoint: str, body: str):
        self.endpoint = endpoint
        self.body = body
        super().__init__(f"{endpoint}: unable to decode the JSON response: {body}")


class MoodleClient:
    """Async client for the Moodle mobile web-service API

    Example:
        client = MoodleClient("https://moodle.example.org")
        body = await client.post_form(TOKEN_ENDPOINT, {"username": "bob", ...})
        data = client.decode(TOKEN_ENDPOINT, body)
    """

    def __init__(
        self,
        base_url: str,
        user_agent: str = "MWAuthMoodleBot/1.0",
        timeout_seconds: float = 5.0,
        max_redirects: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Moodle client.

        Args:
            base_url: Moodle site URL (e.g., https://moodle.example.org)
            user_agent: Client identifier sent with every request
            timeout_seconds: Timeout for connect, read, write and pool
            max_redirects: Maximum redirects followed per request
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
            max_redirects=max_redirects,
            verify=True,
            transport=transport,
        )

    def url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    async def post_form(self, endpoint: str, data: dict) -> str:
        """POST a form-encoded body and return the response text

        Raises:
            MoodleTransportError: On network errors or a non-200 status
        """
        return await self._request("POST", endpoint, data=data)

    async def get(self, endpoint: str, params: dict) -> str:
        """GET with query parameters and return the response text

        Raises:
            MoodleTransportError: On network errors or a non-200 status
        """
        return await self._request("GET", endpoint, params=params)

    def decode(self, endpoint: str, body: str) -> Any:
        """Decode a JSON response body

        Raises:
            MoodleMalformedResponse: If the body is not JSON
        """
        try:
            return json.loads(body)
        except ValueError:
            logger.error(f"AuthMoodle: Unable to decode the JSON response from {endpoint}: {body}")
            raise MoodleMalformedResponse(endpoint, body)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, endpoint: str, **kwargs) -> str:
        url = self.url(endpoint)
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"AuthMoodle: HTTP error calling {endpoint}: {e.__class__.__name__}: {e}")
            raise MoodleTransportError(endpoint, f"{e.__class__.__name__}: {e}") from e

        if response.status_code != 200:
            logger.error(
                f"AuthMoodle: unexpected HTTP response code {response.status_code} from {endpoint}"
            )
            raise MoodleTransportError(
                endpoint,
                f"unexpected HTTP response code {response.status_code}",
                status_code=response.status_code,
            )

        return response.text
