"""
Configuration subsystem for Cortex.

Static configuration is loaded from environment variables (``.env`` supported)
by ``Config``. The service container reads it once and hands plain values to
each component.

Usage
-----
>>> from src.core.config import Config
>>> Config.validate()
>>> Config.CACHE_TTL_PROFILE_SECONDS
300
"""

from src.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
