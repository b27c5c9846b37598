"""
Cache subsystem for Cortex.

- ``CacheKeys`` / ``CacheFamily`` / ``EntityKind``: the key scheme
- ``CacheAsideStore``: failure-tolerant JSON cache over ``RedisService``
"""

from src.core.cache.keys import (
    INVALIDATION_MAP,
    CacheFamily,
    CacheKeys,
    EntityKind,
    canonicalize_tags,
)
from src.core.cache.service import CacheAsideStore

__all__ = [
    "CacheAsideStore",
    "CacheKeys",
    "CacheFamily",
    "EntityKind",
    "INVALIDATION_MAP",
    "canonicalize_tags",
]
