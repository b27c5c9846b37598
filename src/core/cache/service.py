"""
Cache-aside store for the Cortex catalog.

Purpose
-------
Read-through/write-through wrapper around ``RedisService`` that turns every
cache failure into a miss (reads) or a no-op (writes and invalidations).
Cache unavailability reduces performance; it never fails a request.

Responsibilities
----------------
- JSON serialization of cached values
- ``read`` / ``write`` / ``invalidate`` / ``invalidate_pattern``
- Family invalidation driven by the key scheme's invalidation map
- Structured WARNING logs for every swallowed failure

Non-Responsibilities
--------------------
- Connection management (``RedisService``)
- Deciding what to cache or when to invalidate (services)
- Cross-store transactions: the durable store is always the source of truth

Architecture Notes
------------------
- ``invalidate_pattern`` enumerates matching keys, then deletes them in one
  batch; zero matches means no DEL is sent
- A value that fails to decode is treated as a miss and evicted so the next
  read repopulates it
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

from redis.exceptions import RedisError

from src.core.cache.keys import CacheKeys, EntityKind
from src.core.exceptions import CacheError
from src.core.logging.logger import get_logger
from src.core.redis.service import RedisService

logger = get_logger(__name__)

# Everything a cache call may raise that must degrade instead of propagate
CACHE_FAILURES = (RedisError, OSError, asyncio.TimeoutError, TimeoutError, RuntimeError)


class CacheAsideStore:
    """
    Failure-tolerant JSON cache on top of an injected ``RedisService``.

    Parameters
    ----------
    redis:
        Key-value backend.
    keys:
        Key scheme used to resolve family patterns.
    """

    def __init__(self, redis: RedisService, keys: CacheKeys) -> None:
        self.redis = redis
        self.keys = keys

    async def read(self, key: str) -> Optional[Any]:
        """
        Return the decoded value at ``key`` or ``None`` on miss or failure.
        """
        try:
            raw = await self.redis.get(key)
        except CACHE_FAILURES as exc:
            self._log_failure("read", key, exc)
            return None

        if raw is None:
            logger.debug("Cache miss", extra={"key": key})
            return None

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as exc:
            self._log_failure("decode", key, exc)
            await self.invalidate(key)
            return None

        logger.debug("Cache hit", extra={"key": key})
        return value

    async def write(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Store ``value`` as JSON for ``ttl_seconds``. Returns False on failure."""
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as exc:
            self._log_failure("encode", key, exc)
            return False

        try:
            await self.redis.set(key, payload, ttl_seconds)
        except CACHE_FAILURES as exc:
            self._log_failure("write", key, exc)
            return False
        return True

    async def invalidate(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except CACHE_FAILURES as exc:
            self._log_failure("invalidate", key, exc)

    async def invalidate_pattern(self, pattern: str) -> int:
        """
        Delete every key matching ``pattern``.

        Returns
        -------
        int
            Number of keys removed; 0 when nothing matched or the cache
            is unavailable.
        """
        try:
            keys = await self.redis.scan_keys(pattern)
            if not keys:
                return 0
            deleted = await self.redis.delete(*keys)
        except CACHE_FAILURES as exc:
            self._log_failure("invalidate_pattern", pattern, exc)
            return 0

        logger.debug(
            "Cache pattern invalidated",
            extra={"pattern": pattern, "deleted_count": deleted},
        )
        return deleted

    async def invalidate_entity(self, entity: EntityKind) -> None:
        """Invalidate every family a mutation of ``entity`` can make stale."""
        for pattern in self.keys.patterns_for(entity):
            await self.invalidate_pattern(pattern)

    @staticmethod
    def _log_failure(operation: str, key: str, exc: BaseException) -> None:
        error = CacheError(operation, key, exc if isinstance(exc, Exception) else None)
        logger.warning(
            "Cache operation failed; degrading",
            extra={
                "cache_operation": operation,
                "key": key,
                "error_type": type(exc).__name__,
                "error": str(exc),
                "error_code": error.error_code,
            },
        )
