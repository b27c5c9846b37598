"""
RedisService: async key-value infrastructure for Cortex

Purpose
-------
Provide an observable wrapper around one redis-py asyncio client exposing
exactly the primitives the cache-aside store consumes:

- string get
- string set with expiry seconds
- key delete (one or many, batched)
- key enumeration by glob pattern

Responsibilities
----------------
- Create and close the connection pool
- Log every operation with key, latency and outcome
- Re-raise client errors so the caller decides how to degrade

Non-Responsibilities
--------------------
- Serialization (the cache-aside store owns JSON encoding)
- Swallowing failures (the cache-aside store owns degradation)
- Business logic of any kind

Architecture Notes
------------------
- Instances are injected; tests pass an in-memory client with the same
  coroutine surface instead of opening a pool
- Enumeration uses SCAN (cursor based) rather than KEYS so large keyspaces
  never block the server
"""

from __future__ import annotations

import time
from typing import Any, List, Optional

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import RedisError

from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class RedisService:
    """
    Async Redis access for one logical keyspace.

    Parameters
    ----------
    url:
        Redis connection URL, used when no client is injected.
    client:
        Pre-built client (or an object with the same coroutine surface).
    socket_timeout:
        Seconds before a socket read/write is abandoned.
    max_connections:
        Upper bound on pooled connections.
    """

    SCAN_BATCH_SIZE = 500

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        client: Optional[AsyncRedis] = None,
        socket_timeout: float = 5,
        max_connections: int = 50,
    ) -> None:
        self.url = url
        self.socket_timeout = socket_timeout
        self.max_connections = max_connections
        self._client: Optional[AsyncRedis] = client

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE MANAGEMENT
    # ═══════════════════════════════════════════════════════════════════════

    async def initialize(self) -> None:
        """
        Open the connection pool and verify it with PING.

        A Redis outage at startup is logged, not raised: the cache is an
        optimization and every read path degrades to the durable store.
        """
        if self._client is not None:
            logger.debug("RedisService already initialized, skipping")
            return

        start_time = time.monotonic()
        self._client = AsyncRedis.from_url(
            self.url,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.socket_timeout,
            encoding="utf-8",
            decode_responses=True,
            max_connections=self.max_connections,
            retry_on_timeout=False,
        )

        healthy = await self.health_check()
        logger.info(
            "RedisService initialized",
            extra={
                "url_scheme": self.url.split("://")[0] if "://" in self.url else "unknown",
                "socket_timeout_seconds": self.socket_timeout,
                "max_connections": self.max_connections,
                "healthy": healthy,
                "initialization_time_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )

    async def shutdown(self) -> None:
        """Close the client. Safe to call when never initialized."""
        client, self._client = self._client, None
        if client is None:
            return

        try:
            await client.aclose()
            logger.info("RedisService shutdown complete")
        except (RedisError, OSError) as exc:
            logger.error(
                "Error during RedisService shutdown",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )

    def client(self) -> AsyncRedis:
        if self._client is None:
            raise RuntimeError("RedisService not initialized")
        return self._client

    async def health_check(self) -> bool:
        """Verify Redis connectivity via PING."""
        if self._client is None:
            return False

        try:
            start_time = time.monotonic()
            pong = await self._client.ping()  # type: ignore[misc]
            logger.debug(
                "Redis health check",
                extra={
                    "ok": bool(pong),
                    "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
                },
            )
            return bool(pong)
        except (RedisError, OSError) as exc:
            logger.warning(
                "Redis health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

    # ═══════════════════════════════════════════════════════════════════════
    # KEY-VALUE OPERATIONS
    # ═══════════════════════════════════════════════════════════════════════

    async def get(self, key: str) -> Optional[str]:
        start_time = time.monotonic()
        try:
            result = await self.client().get(key)
        except Exception as exc:
            self._log_failure("GET", start_time, exc, key=key)
            raise

        logger.debug(
            "Redis GET operation",
            extra={
                "key": key,
                "found": result is not None,
                "latency_ms": self._elapsed_ms(start_time),
            },
        )
        return result

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        start_time = time.monotonic()
        try:
            result = await self.client().set(key, value, ex=ttl_seconds)
        except Exception as exc:
            self._log_failure("SET", start_time, exc, key=key, ttl_seconds=ttl_seconds)
            raise

        logger.debug(
            "Redis SET operation",
            extra={
                "key": key,
                "ttl_seconds": ttl_seconds,
                "latency_ms": self._elapsed_ms(start_time),
            },
        )
        return bool(result)

    async def delete(self, *keys: str) -> int:
        """Delete one or more keys in a single DEL. Returns the count removed."""
        if not keys:
            return 0

        start_time = time.monotonic()
        try:
            count = await self.client().delete(*keys)
        except Exception as exc:
            self._log_failure("DELETE", start_time, exc, keys=len(keys))
            raise

        logger.debug(
            "Redis DELETE operation",
            extra={
                "keys": len(keys),
                "deleted_count": int(count),
                "latency_ms": self._elapsed_ms(start_time),
            },
        )
        return int(count)

    async def scan_keys(self, pattern: str) -> List[str]:
        """Enumerate every key matching a glob pattern."""
        start_time = time.monotonic()
        keys: List[str] = []
        try:
            async for key in self.client().scan_iter(match=pattern, count=self.SCAN_BATCH_SIZE):
                keys.append(key)
        except Exception as exc:
            self._log_failure("SCAN", start_time, exc, pattern=pattern)
            raise

        logger.debug(
            "Redis SCAN operation",
            extra={
                "pattern": pattern,
                "matched": len(keys),
                "latency_ms": self._elapsed_ms(start_time),
            },
        )
        return keys

    # ═══════════════════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════════════════

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return round((time.monotonic() - start_time) * 1000, 2)

    def _log_failure(self, operation: str, start_time: float, exc: Exception, **context: Any) -> None:
        logger.debug(
            f"Redis {operation} operation failed",
            extra={
                **context,
                "latency_ms": self._elapsed_ms(start_time),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
