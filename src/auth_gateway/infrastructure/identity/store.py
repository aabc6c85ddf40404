"""Identity Storage System

Purpose: Reference implementations of the host identity store

The gateway writes identity updates through the IdentityStore port. These
implementations back it with process memory (development, tests) or Redis.

Key Features:
- Username canonicalization
- Idempotent directive application
- Real name lookup for collision avoidance

Storage Schema (Redis):
- gateway:identity:{username} -> {identity_json}
- gateway:real_name:{real_name} -> {username}
"""

import json
import logging
import re
from typing import Dict, Optional

from redis.asyncio import Redis

from auth_gateway.core.auth.provider import IdentityStore
from auth_gateway.domain.models import IdentityDirective, LocalIdentity, SetRealName

logger = logging.getLogger(__name__)

INVALID_USERNAME_CHARACTERS = "#<>[]|{}/@:="
MAX_USERNAME_LENGTH = 255


def canonicalize_username(username: Optional[str], capitalize: bool = False) -> Optional[str]:
    """Normalize a username the way the host stores it

    Underscores become spaces, runs of whitespace collapse and the name is
    trimmed. Names that are empty, too long or contain reserved characters
    are not usable.

    Args:
        username: Name as typed by the user
        capitalize: Upper-case the first character

    Returns:
        Canonical username, or None if not usable
    """
    if username is None:
        return None

    name = re.sub(r"[\s_]+", " ", username).strip()
    if not name or len(name) > MAX_USERNAME_LENGTH:
        return None
    if any(char in INVALID_USERNAME_CHARACTERS for char in name):
        return None

    if capitalize:
        name = name[0].upper() + name[1:]
    return name


class MemoryIdentityStore(IdentityStore):
    """In-process identity store"""

    def __init__(self, capitalize_usernames: bool = False):
        self.capitalize_usernames = capitalize_usernames
        self._identities: Dict[str, LocalIdentity] = {}

    def canonicalize(self, username: str) -> Optional[str]:
        return canonicalize_username(username, self.capitalize_usernames)

    async def load_identity(self, username: str) -> LocalIdentity:
        stored = self._identities.get(username)
        if stored is None:
            return LocalIdentity(username=username)
        return LocalIdentity.from_dict(stored.to_dict())

    async def find_username_by_real_name(self, real_name: str) -> Optional[str]:
        for identity in self._identities.values():
            if identity.real_name == real_name:
                return identity.username
        return None

    async def apply(self, username: str, directive: IdentityDirective) -> LocalIdentity:
        identity = self._identities.setdefault(username, LocalIdentity(username=username))
        directive.apply_to(identity)
        return LocalIdentity.from_dict(identity.to_dict())

    async def save(self, identity: LocalIdentity) -> None:
        """Store an identity as-is (seeding existing accounts)"""
        self._identities[identity.username] = LocalIdentity.from_dict(identity.to_dict())


class RedisIdentityStore(IdentityStore):
    """Redis-backed identity store"""

    def __init__(self, redis_client: Redis, capitalize_usernames: bool = False):
        """Initialize identity store

        Args:
            redis_client: Redis connection for identity storage
            capitalize_usernames: Upper-case the first letter of usernames
        """
        self.redis = redis_client
        self.capitalize_usernames = capitalize_usernames

        # Redis key patterns
        self.identity_key_pattern = "gateway:identity:{}"
        self.real_name_key_pattern = "gateway:real_name:{}"

    def canonicalize(self, username: str) -> Optional[str]:
        return canonicalize_username(username, self.capitalize_usernames)

    async def load_identity(self, username: str) -> LocalIdentity:
        data = await self.redis.get(self.identity_key_pattern.format(username))
        if not data:
            return LocalIdentity(username=username)
        return LocalIdentity.from_dict(json.loads(data))

    async def find_username_by_real_name(self, real_name: str) -> Optional[str]:
        holder = await self.redis.get(self.real_name_key_pattern.format(real_name))
        if not holder:
            return None
        return holder.decode() if isinstance(holder, bytes) else holder

    async def apply(self, username: str, directive: IdentityDirective) -> LocalIdentity:
        identity = await self.load_identity(username)
        previous_real_name = identity.real_name
        directive.apply_to(identity)

        try:
            await self.redis.set(
                self.identity_key_pattern.format(username), json.dumps(identity.to_dict())
            )
            if isinstance(directive, SetRealName) and previous_real_name != identity.real_name:
                await self._update_real_name_index(username, previous_real_name, identity.real_name)
        except Exception as e:
            logger.error(f"Failed to apply {type(directive).__name__} for {username}: {e}")
            raise

        logger.info(f"Applied {type(directive).__name__} to identity {username}")
        return identity

    async def _update_real_name_index(self, username: str, old_name: str, new_name: str) -> None:
        # Index entries belong to whoever set the name first
        if old_name and await self.find_username_by_real_name(old_name) == username:
            await self.redis.delete(self.real_name_key_pattern.format(old_name))

        holder = await self.find_username_by_real_name(new_name)
        if holder is None:
            await self.redis.set(self.real_name_key_pattern.format(new_name), username)
        elif holder != username:
            logger.warning(f"Real name {new_name} is already indexed for {holder}, not for {username}")
