"""Pending Attempt Storage

Purpose: Hold the Moodle token and profile between begin_authentication and
post_authentication.

Entries are keyed by canonical username, expire after a short TTL and are
consumed exactly once: take() reads and deletes atomically, so when two
attempts for the same user race, only the first post-authentication gets the
entry and the other sees nothing.

Storage Schema (Redis):
- gateway:pending:{username} -> {attempt_json} (SETEX, TTL)
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from redis.asyncio import Redis

from auth_gateway.domain.models import PendingAttempt

logger = logging.getLogger(__name__)


class PendingAttemptStore(ABC):
    """Bounded per-username holding area for pending attempts"""

    @abstractmethod
    async def put(self, username: str, attempt: PendingAttempt) -> None:
        """Store an attempt, replacing any pending one for the user"""
        pass

    @abstractmethod
    async def take(self, username: str) -> Optional[PendingAttempt]:
        """Remove and return the pending attempt for the user, if any"""
        pass


class MemoryPendingAttemptStore(PendingAttemptStore):
    """In-process store

    WARNING: Only works for single-instance deployments. With several
    instances behind a load balancer use RedisPendingAttemptStore.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize memory store

        Args:
            ttl_seconds: Seconds an attempt stays claimable
            max_entries: Maximum pending attempts; oldest are evicted first
            clock: Monotonic time source
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, PendingAttempt]]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def put(self, username: str, attempt: PendingAttempt) -> None:
        async with self._lock:
            self._purge_expired()
            self._entries.pop(username, None)
            self._entries[username] = (self._clock() + self.ttl_seconds, attempt)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.warning(f"Pending attempt store full, evicted attempt for {evicted}")

    async def take(self, username: str) -> Optional[PendingAttempt]:
        async with self._lock:
            entry = self._entries.pop(username, None)
            if entry is None:
                return None
            expires_at, attempt = entry
            if expires_at <= self._clock():
                logger.debug(f"Pending attempt for {username} expired")
                return None
            return attempt

    def __len__(self) -> int:
        return len(self._entries)

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [name for name, (expires_at, _) in self._entries.items() if expires_at <= now]
        for name in expired:
            del self._entries[name]


class RedisPendingAttemptStore(PendingAttemptStore):
    """Redis-backed store shared by all gateway instances"""

    def __init__(self, redis_client: Redis, ttl_seconds: int = 300):
        """Initialize Redis store

        Args:
            redis_client: Redis connection
            ttl_seconds: Seconds an attempt stays claimable
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.key_pattern = "gateway:pending:{}"

    async def put(self, username: str, attempt: PendingAttempt) -> None:
        key = self.key_pattern.format(username)
        try:
            await self.redis.setex(key, self.ttl_seconds, json.dumps(attempt.to_dict()))
        except Exception as e:
            logger.error(f"Redis SETEX failed for key {key}: {e}")
            raise

    async def take(self, username: str) -> Optional[PendingAttempt]:
        key = self.key_pattern.format(username)
        try:
            data = await self.redis.getdel(key)
        except Exception as e:
            logger.error(f"Redis GETDEL failed for key {key}: {e}")
            return None

        if not data:
            return None

        try:
            return PendingAttempt.from_dict(json.loads(data))
        except (ValueError, KeyError) as e:
            logger.error(f"Corrupt pending attempt for {username}: {e}")
            return None
