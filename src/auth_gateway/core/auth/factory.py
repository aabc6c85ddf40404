"""Authentication provider factory.

Builds the Moodle provider and its stores from the application settings.
"""

import logging
from typing import Optional

from auth_gateway.config.settings import Settings, get_settings
from auth_gateway.core.auth.moodle import MoodlePasswordAuthProvider
from auth_gateway.core.auth.provider import IdentityStore
from auth_gateway.infrastructure.auth.attempt_store import (
    MemoryPendingAttemptStore,
    PendingAttemptStore,
    RedisPendingAttemptStore,
)
from auth_gateway.infrastructure.identity.store import MemoryIdentityStore, RedisIdentityStore
from auth_gateway.infrastructure.moodle.client import MoodleClient
from auth_gateway.infrastructure.redis.client import get_redis_client

logger = logging.getLogger(__name__)

# Global provider instance (initialized on first call)
_provider_instance: Optional[MoodlePasswordAuthProvider] = None


async def build_attempt_store(settings: Settings) -> PendingAttemptStore:
    """Create the pending attempt store selected by ATTEMPT_STORE_BACKEND"""
    if settings.attempt_store_backend == "redis":
        redis_client = await get_redis_client()
        return RedisPendingAttemptStore(
            redis_client.get_client(), ttl_seconds=settings.pending_attempt_ttl_seconds
        )
    return MemoryPendingAttemptStore(
        ttl_seconds=settings.pending_attempt_ttl_seconds,
        max_entries=settings.pending_attempt_max_entries,
    )


async def build_identity_store(settings: Settings) -> IdentityStore:
    """Create the identity store selected by IDENTITY_STORE_BACKEND"""
    if settings.identity_store_backend == "redis":
        redis_client = await get_redis_client()
        return RedisIdentityStore(
            redis_client.get_client(), capitalize_usernames=settings.capitalize_usernames
        )
    return MemoryIdentityStore(capitalize_usernames=settings.capitalize_usernames)


async def get_auth_provider() -> MoodlePasswordAuthProvider:
    """Get the configured authentication provider instance.

    Returns:
        Configured MoodlePasswordAuthProvider instance

    Raises:
        pydantic.ValidationError: If MOODLE_URL is not configured
    """
    global _provider_instance

    if _provider_instance is not None:
        return _provider_instance

    settings = get_settings()
    logger.info(f"Initializing Moodle authentication provider for {settings.moodle_url}")

    client = MoodleClient(
        settings.moodle_url,
        user_agent=settings.user_agent,
        timeout_seconds=settings.request_timeout_seconds,
        max_redirects=settings.max_redirects,
    )

    _provider_instance = MoodlePasswordAuthProvider(
        moodle_url=settings.moodle_url,
        identity_store=await build_identity_store(settings),
        auto_bureaucrats=settings.auto_bureaucrats,
        attempt_store=await build_attempt_store(settings),
        client=client,
        service=settings.moodle_service,
    )

    logger.info(
        f"Auth provider initialized: {_provider_instance.__class__.__name__} "
        f"(attempts: {settings.attempt_store_backend}, identities: {settings.identity_store_backend})"
    )
    return _provider_instance


async def close_auth_provider() -> None:
    """Close the provider's HTTP client and forget the instance"""
    global _provider_instance
    if _provider_instance is not None:
        await _provider_instance.aclose()
        _provider_instance = None


def reset_provider() -> None:
    """Reset the global provider instance (for testing)."""
    global _provider_instance
    _provider_instance = None
