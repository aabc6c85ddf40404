"""Identity Mapper

Plans the identity updates for a user who just logged in with a Moodle
profile. Planning reads the identity store (real name collisions) but never
writes to it; the caller applies the returned directives.
"""

import logging
from typing import Dict, List

from auth_gateway.core.auth.provider import IdentityStore
from auth_gateway.domain.models import (
    BUREAUCRAT_GROUP,
    AddToGroup,
    ConfirmEmail,
    IdentityDirective,
    LocalIdentity,
    RemoteProfile,
    RemoveFromGroup,
    SetEmail,
    SetRealName,
)

logger = logging.getLogger(__name__)

MAX_REAL_NAME_ATTEMPTS = 100
UNSET_MARKER = "unset"


class IdentityMapper:
    """Maps a Moodle profile onto a local identity."""

    def __init__(self, identity_store: IdentityStore):
        self.identity_store = identity_store

    async def plan(
        self,
        profile: RemoteProfile,
        identity: LocalIdentity,
        auto_bureaucrats: Dict[str, str],
    ) -> List[IdentityDirective]:
        """Plan the directives for one successful login.

        Args:
            profile: Profile fetched from Moodle
            identity: Current local identity
            auto_bureaucrats: Username -> email (or "unset") of bureaucrats

        Returns:
            Directives in application order
        """
        directives: List[IdentityDirective] = []

        if identity.real_name == "":
            logger.debug("AuthMoodle: Setting the user real name")
            real_name = await self.choose_real_name(profile.full_name, identity.username)
            directives.append(SetRealName(real_name))

        directives.append(SetEmail(profile.email))
        directives.append(ConfirmEmail())

        policy = auto_bureaucrats.get(identity.username)
        if policy:
            if policy == UNSET_MARKER:
                directives.append(RemoveFromGroup(BUREAUCRAT_GROUP))
            elif policy == profile.email:
                directives.append(AddToGroup(BUREAUCRAT_GROUP))

        return directives

    async def choose_real_name(self, full_name: str, username: str) -> str:
        """Pick a real name not held by another identity.

        Tries "Full Name", "Full Name 2", "Full Name 3", ... and accepts the
        100th candidate even if it is still taken.
        """
        real_name = full_name
        counter = 1
        while counter < MAX_REAL_NAME_ATTEMPTS and await self._is_taken(real_name, username):
            counter += 1
            real_name = f"{full_name} {counter}"
        return real_name

    async def _is_taken(self, real_name: str, username: str) -> bool:
        holder = await self.identity_store.find_username_by_real_name(real_name)
        return holder is not None and holder != username
