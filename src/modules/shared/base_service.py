"""
Base Service Foundation

Purpose
-------
Provides the foundational class for Cortex catalog services. Services own
the durable write, the cache-aside read path around it and the cache
invalidation that follows every mutation.

Design Notes
------------
This base class provides:
- Injected ``DatabaseService``, ``CacheAsideStore`` and ``CacheKeys``
- ``cache_aside()``: check cache, on miss load, populate, return
- Structured logging with operation context
- Validation helpers raising ``ValidationError``

What this class does NOT do:
- Hold request state (instances are shared across requests)
- Read ``Config`` (TTLs arrive through the constructor)
- Translate driver errors (``DatabaseService`` does)

Usage
-----
    class ProviderService(BaseService):
        async def get_by_id(self, provider_id):
            payload = await self.cache_aside(
                self.keys.provider_by_id(provider_id),
                lambda: self._load_provider(provider_id),
            )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from .exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.cache.keys import CacheKeys
    from src.core.cache.service import CacheAsideStore
    from src.core.database.service import DatabaseService


class BaseService:
    """
    Base class for catalog services.

    Args:
        db: Durable store access
        cache: Failure-tolerant cache
        keys: Cache key scheme
        logger: Structured logger instance
        ttl_seconds: TTL applied by ``cache_aside`` unless overridden
    """

    def __init__(
        self,
        db: DatabaseService,
        cache: CacheAsideStore,
        keys: CacheKeys,
        logger: Logger,
        ttl_seconds: int = 86400,
    ) -> None:
        self.db = db
        self.cache = cache
        self.keys = keys
        self.log = logger
        self.ttl_seconds = ttl_seconds

    async def cache_aside(
        self,
        key: str,
        loader: Callable[[], Awaitable[Optional[Any]]],
        *,
        ttl_seconds: Optional[int] = None,
        cache_if: Callable[[Any], bool] = lambda value: True,
    ) -> Optional[Any]:
        """
        Serve ``key`` from cache, falling back to ``loader`` on a miss.

        ``loader`` must return a JSON-serializable payload or None. None is
        never cached, so a missing entity is looked up again next time.
        """
        cached = await self.cache.read(key)
        if cached is not None:
            return cached

        value = await loader()
        if value is not None and cache_if(value):
            await self.cache.write(key, value, ttl_seconds or self.ttl_seconds)
        return value

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def validate_positive_int(self, value: Any, name: str) -> None:
        """
        Validate that a value is a positive integer.

        Raises:
            ValidationError: If value is not a positive int (bools rejected)
        """
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(
                name, f"{name} must be a positive integer, got {value}"
            )

    def validate_required_str(self, value: Any, name: str) -> str:
        """Return ``value`` stripped, or raise when missing or blank."""
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(name, f"{name} is required")
        return value.strip()
