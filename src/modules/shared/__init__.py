"""
Cortex Shared Module

Purpose
-------
Domain-level foundations shared by the catalog, bookmark and premium
modules:
- Domain exceptions (the typed failures handed to a routing layer)
- Base service (cache-aside reads, validation helpers)
- Base repository (typed SQLAlchemy 2.0 data access)

Usage
-----
    from src.modules.shared import BaseService, BaseRepository, NotFoundError
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    AuthenticationError,
    ConflictError,
    CortexDomainException,
    NotFoundError,
    PremiumRequiredError,
    ValidationError,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "CortexDomainException",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "PremiumRequiredError",
    "AuthenticationError",
]
