"""
Database infrastructure for Cortex.

Exports the injected ``DatabaseService`` and the driver-error translator.
"""

from src.core.database.service import DatabaseService, translate_database_error

__all__ = ["DatabaseService", "translate_database_error"]
