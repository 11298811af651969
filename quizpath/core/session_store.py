import asyncio
import copy
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Dict, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from quizpath.core.config import settings

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """
    Key/value store for live quiz sessions.

    Values are JSON-compatible and expire after `ttl` seconds (`SESSION_TTL`
    when omitted, never when 0). `lock(key)` guards a read-modify-write of one
    key against concurrent writers.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def lock(self, key: str) -> AsyncContextManager:
        pass


class MemorySessionStore(SessionStore):
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self):
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at and time.time() >= expires_at:
            del self._entries[key]
            return None
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        ttl = settings.SESSION_TTL if ttl is None else ttl
        expires_at = time.time() + ttl if ttl else 0
        self._entries[key] = (expires_at, copy.deepcopy(value))
        return True

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def lock(self, key: str) -> AsyncContextManager:
        return self._locks.setdefault(key, asyncio.Lock())


class RedisSessionStore(SessionStore):
    """Shared store for multi-worker deployments. Locks are Redis locks, so they hold across processes."""

    def __init__(self, redis_url: str, lock_timeout: Optional[float] = None):
        self.redis = aioredis.from_url(redis_url, decode_responses=True)
        self.lock_timeout = lock_timeout or settings.SESSION_LOCK_TIMEOUT

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await self.redis.get(key)
        except RedisError as e:
            logger.error(f"Redis GET error for key {key}: {e}")
            return None
        if not value:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable session data under {key}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        ttl = settings.SESSION_TTL if ttl is None else ttl
        try:
            await self.redis.set(key, json.dumps(value), ex=ttl or None)
            return True
        except RedisError as e:
            logger.error(f"Redis SET error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            return await self.redis.delete(key) > 0
        except RedisError as e:
            logger.error(f"Redis DELETE error for key {key}: {e}")
            return False

    def lock(self, key: str) -> AsyncContextManager:
        return self.redis.lock(f"{key}:lock", timeout=self.lock_timeout, blocking_timeout=self.lock_timeout)


def create_session_store() -> SessionStore:
    if settings.REDIS_URL:
        logger.info("Initializing Redis session store")
        return RedisSessionStore(settings.REDIS_URL)

    logger.info("Using in-memory session store")
    return MemorySessionStore()
