"""Credential exchange against the Moodle token endpoint."""

import logging

from auth_gateway.domain.models import AuthFailure, FailureKind, TokenExchangeResult
from auth_gateway.infrastructure.moodle.client import (
    TOKEN_ENDPOINT,
    MoodleClient,
    MoodleMalformedResponse,
    MoodleTransportError,
)

logger = logging.getLogger(__name__)


class CredentialExchanger:
    """Exchanges a username/password pair for a Moodle web-service token.

    Every expected failure is returned as a TokenExchangeResult carrying an
    AuthFailure; nothing is raised for remote errors. The password is sent to
    Moodle and never logged.
    """

    def __init__(self, client: MoodleClient, service: str = "moodle_mobile_app"):
        self.client = client
        self.service = service

    async def exchange(self, username: str, password: str) -> TokenExchangeResult:
        """Attempt to authenticate the user against Moodle.

        Args:
            username: Username as supplied by the user
            password: Password (plain text)

        Returns:
            TokenExchangeResult with the token on success
        """
        params = {
            "username": username,
            "password": password,
            "service": self.service,
        }

        try:
            body = await self.client.post_form(TOKEN_ENDPOINT, params)
            decoded = self.client.decode(TOKEN_ENDPOINT, body)
        except MoodleTransportError as e:
            return TokenExchangeResult(failure=AuthFailure(FailureKind.TRANSPORT_ERROR, str(e)))
        except MoodleMalformedResponse as e:
            return TokenExchangeResult(failure=AuthFailure(FailureKind.MALFORMED_RESPONSE, e.body))

        if not decoded:
            logger.error(f"AuthMoodle: Unable to decode the JSON response: {body}")
            return TokenExchangeResult(failure=AuthFailure(FailureKind.MALFORMED_RESPONSE, body))

        if not isinstance(decoded, dict):
            logger.error(f"AuthMoodle: Unknown error: {body}")
            return TokenExchangeResult(failure=AuthFailure(FailureKind.UNKNOWN, body))

        if decoded.get("token"):
            return TokenExchangeResult(token=decoded["token"])

        if "exception" in decoded:
            message = decoded["exception"]
            if decoded.get("message"):
                message = f"{message}: {decoded['message']}"
            logger.error(f"AuthMoodle: Remote exception: {message}")
            return TokenExchangeResult(failure=AuthFailure(FailureKind.REMOTE_REJECTED, message))

        if "error" in decoded:
            logger.error(f"AuthMoodle: Remote error: {decoded['error']}")
            return TokenExchangeResult(
                failure=AuthFailure(FailureKind.REMOTE_REJECTED, str(decoded["error"]))
            )

        logger.error(f"AuthMoodle: Unknown error: {body}")
        return TokenExchangeResult(failure=AuthFailure(FailureKind.UNKNOWN, body))
