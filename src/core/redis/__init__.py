"""
Redis infrastructure for Cortex.

Exports
-------
RedisService - async client lifecycle plus get/set/delete/scan primitives
"""

from src.core.redis.service import RedisService

__all__ = ["RedisService"]
