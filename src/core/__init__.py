"""
Core infrastructure layer for Cortex.

Purpose
-------
Provide a single, well-structured import surface for the core infrastructure
subsystems of Cortex:

- Configuration (Config)
- Redis subsystem (RedisService) and the cache-aside store built on it
- Logging (structured logging, logger factory)
- Infrastructure exceptions (CortexInfrastructureException hierarchy)

Responsibilities
----------------
- Re-export commonly used infra primitives for ergonomic imports
- Maintain a stable, intentional public API via __all__

Non-Responsibilities
--------------------
- Implement infra logic (delegated to submodules)
- Catalog rules (``src.modules``)
- Any side effects beyond simple re-exports

Design Decisions
----------------
- This module is intentionally thin: no logic, no configuration, no I/O.
- ``DatabaseService`` and the service container are not re-exported:
  both reach into ``src.modules`` (domain error translation, services),
  which itself imports ``src.core.exceptions``. Import them from
  ``src.core.database`` and ``src.core.services.container``.
"""

from __future__ import annotations

from src.core.cache import CacheAsideStore, CacheKeys
from src.core.config import Config
from src.core.exceptions import (
    CacheError,
    CortexInfrastructureException,
    DatabaseError,
    ErrorSeverity,
    UpstreamServiceError,
)
from src.core.logging import get_logger, setup_logging
from src.core.redis import RedisService

__all__ = [
    # Configuration
    "Config",
    # Redis / cache
    "RedisService",
    "CacheAsideStore",
    "CacheKeys",
    # Logging
    "setup_logging",
    "get_logger",
    # Infrastructure Exceptions
    "CortexInfrastructureException",
    "DatabaseError",
    "CacheError",
    "UpstreamServiceError",
    "ErrorSeverity",
]
