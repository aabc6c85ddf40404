"""Moodle password authentication provider.

Authenticates users against a remote Moodle site through its mobile
web-service API. Every remote failure results in an abstain: if Moodle is
unreachable the host can still fall through to another provider.
"""

import logging
from typing import Dict, List, Optional

from auth_gateway.core.auth.provider import IdentityStore, PrimaryAuthProvider
from auth_gateway.core.identity.mapper import IdentityMapper
from auth_gateway.core.moodle.exchanger import CredentialExchanger
from auth_gateway.core.moodle.fetcher import ProfileFetcher
from auth_gateway.domain.models import (
    AuthAction,
    AuthenticationResponse,
    AuthFailure,
    FailureKind,
    IdentityDirective,
    LocalIdentity,
    PasswordAuthenticationRequest,
    PendingAttempt,
)
from auth_gateway.infrastructure.auth.attempt_store import (
    MemoryPendingAttemptStore,
    PendingAttemptStore,
)
from auth_gateway.infrastructure.moodle.client import MoodleClient

logger = logging.getLogger(__name__)


class MoodlePasswordAuthProvider(PrimaryAuthProvider):
    """Primary authentication provider backed by a remote Moodle site.

    Example Configuration:
        MOODLE_URL=https://moodle.example.org
        AUTO_BUREAUCRATS='{"alice": "alice@example.com", "mallory": "unset"}'
    """

    def __init__(
        self,
        moodle_url: str,
        identity_store: IdentityStore,
        auto_bureaucrats: Optional[Dict[str, str]] = None,
        attempt_store: Optional[PendingAttemptStore] = None,
        client: Optional[MoodleClient] = None,
        service: str = "moodle_mobile_app",
    ):
        """Initialize Moodle provider.

        Args:
            moodle_url: URL of the Moodle site we authenticate against
            identity_store: Host identity store
            auto_bureaucrats: Username -> email (or "unset") of users to
                become bureaucrats automatically on login
            attempt_store: Holding area for pending attempts
            client: Moodle HTTP client (defaults to one for moodle_url)
            service: Moodle web service to request tokens for

        Raises:
            ValueError: If moodle_url is missing
        """
        if not moodle_url or not moodle_url.strip():
            raise ValueError("The moodle_url parameter is missing in the auth configuration")

        self.moodle_url = moodle_url.strip().rstrip("/")
        self.identity_store = identity_store
        self.auto_bureaucrats = dict(auto_bureaucrats or {})
        self.attempt_store = (
            attempt_store if attempt_store is not None else MemoryPendingAttemptStore()
        )
        self.client = client if client is not None else MoodleClient(self.moodle_url)

        self.exchanger = CredentialExchanger(self.client, service=service)
        self.fetcher = ProfileFetcher(self.client)
        self.mapper = IdentityMapper(identity_store)

    async def begin_authentication(
        self, requests: List[PasswordAuthenticationRequest]
    ) -> AuthenticationResponse:
        """Authenticate the submitted username/password against Moodle.

        Returns:
            PASS with the canonical username, or ABSTAIN
        """
        request = next(
            (r for r in requests if isinstance(r, PasswordAuthenticationRequest)), None
        )
        if request is None:
            return AuthenticationResponse.new_abstain()

        if not request.username or not request.password:
            return AuthenticationResponse.new_abstain()

        username = self.identity_store.canonicalize(request.username)
        if username is None:
            logger.debug("AuthMoodle: Username is not usable, abstaining")
            return AuthenticationResponse.new_abstain()

        exchange = await self.exchanger.exchange(request.username, request.password)
        if not exchange.is_success:
            logger.info(f"AuthMoodle: Token request failed for {username}: {exchange.failure}")
            return AuthenticationResponse.new_abstain(exchange.failure)

        fetched = await self.fetcher.fetch(exchange.token, request.username)
        if not fetched.is_success:
            logger.error(f"AuthMoodle: Unable to obtain valid user info: {fetched.failure}")
            return AuthenticationResponse.new_abstain(fetched.failure)

        await self.attempt_store.put(
            username, PendingAttempt(token=exchange.token, profile=fetched.profile)
        )
        logger.info(f"AuthMoodle: Authenticated {username}")
        return AuthenticationResponse.new_pass(username)

    async def post_authentication(
        self, identity: LocalIdentity, response: AuthenticationResponse
    ) -> List[IdentityDirective]:
        """Apply the Moodle profile to the identity that just logged in.

        Failures here are logged only; the login itself already succeeded.

        Returns:
            Directives that were applied, in order
        """
        if not response.is_pass:
            return []

        attempt = await self.attempt_store.take(identity.username)
        if attempt is None:
            failure = AuthFailure(FailureKind.STATE_LOST, f"no pending attempt for {identity.username}")
            logger.error(f"AuthMoodle: Moodle token not found, skipping update ({failure})")
            return []

        applied: List[IdentityDirective] = []
        try:
            directives = await self.mapper.plan(attempt.profile, identity, self.auto_bureaucrats)
            for directive in directives:
                await self.identity_store.apply(identity.username, directive)
                applied.append(directive)
        except Exception as e:
            logger.error(
                f"AuthMoodle: Failed to update identity {identity.username} "
                f"after {len(applied)} update(s): {e}"
            )
            return applied

        logger.info(
            f"AuthMoodle: Updated identity {identity.username} "
            f"({', '.join(type(d).__name__ for d in applied)})"
        )
        return applied

    def get_authentication_requests(self, action: AuthAction) -> List[PasswordAuthenticationRequest]:
        if action == AuthAction.LOGIN:
            return [PasswordAuthenticationRequest()]
        return []

    async def aclose(self) -> None:
        await self.client.aclose()
