"""Abstract primary authentication provider interface.

This module defines the contract between the gateway and its host: the
provider decides whether to accept login credentials, and the identity store
is the host capability the provider writes identity updates through.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from auth_gateway.domain.models import (
    AuthAction,
    AuthenticationResponse,
    IdentityDirective,
    LocalIdentity,
    PasswordAuthenticationRequest,
)


class UnsupportedOperationError(Exception):
    """Operation is not supported by this provider."""
    pass


class IdentityStore(ABC):
    """Host identity store capabilities used by providers.

    Implementations must make apply() idempotent: applying the same directive
    twice leaves the stored identity as it was after the first application.
    """

    @abstractmethod
    def canonicalize(self, username: str) -> Optional[str]:
        """Return the host's canonical form of a username.

        Returns:
            Canonical username, or None if the name is not usable
        """
        pass

    @abstractmethod
    async def load_identity(self, username: str) -> LocalIdentity:
        """Load the identity for a canonical username.

        Unknown usernames yield a blank identity (no real name, no email).
        """
        pass

    @abstractmethod
    async def find_username_by_real_name(self, real_name: str) -> Optional[str]:
        """Return the username holding a real name, if any."""
        pass

    @abstractmethod
    async def apply(self, username: str, directive: IdentityDirective) -> LocalIdentity:
        """Apply one directive to the stored identity and return it."""
        pass


class PrimaryAuthProvider(ABC):
    """Abstract interface for primary authentication providers.

    The host consults providers in priority order. A provider either passes
    the attempt with a canonical username or abstains, letting the host try
    the next provider.
    """

    @abstractmethod
    async def begin_authentication(
        self, requests: List[PasswordAuthenticationRequest]
    ) -> AuthenticationResponse:
        """Decide whether to accept the submitted credentials.

        Args:
            requests: Authentication requests collected by the host

        Returns:
            AuthenticationResponse with PASS or ABSTAIN status
        """
        pass

    @abstractmethod
    async def post_authentication(
        self, identity: LocalIdentity, response: AuthenticationResponse
    ) -> List[IdentityDirective]:
        """Update the local identity after the host committed the decision.

        Args:
            identity: The host identity that logged in
            response: Response from begin_authentication

        Returns:
            Directives applied to the identity store
        """
        pass

    @abstractmethod
    def get_authentication_requests(self, action: AuthAction) -> List[PasswordAuthenticationRequest]:
        """Describe the requests the host must collect for an action."""
        pass

    async def test_user_exists(self, username: str) -> bool:
        return False

    async def test_user_can_authenticate(self, username: str) -> bool:
        return await self.test_user_exists(username)

    def provider_allows_property_change(self, property_name: str) -> bool:
        return False

    def provider_allows_authentication_data_change(self, request) -> str:
        return "ignored"

    def provider_change_authentication_data(self, request) -> None:
        return None

    def account_creation_type(self) -> str:
        return "create"

    async def begin_primary_account_creation(self, user, creator, requests) -> None:
        raise UnsupportedOperationError(f"{self.__class__.__name__} does not create accounts")
