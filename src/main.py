"""
Cortex - Application Entry Point
================================

Bootstrap
---------
- Config validation
- Logging initialization
- Service container construction and startup
- Optional schema creation
- Health report
- Graceful shutdown

Usage:
    python -m src.main --create-schema
    python -m src.main --check
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from src.core.config.config import Config
from src.core.logging.logger import get_logger, setup_logging, shutdown_logging
from src.core.services.container import ServiceContainer

logger = get_logger(__name__)


# ============================================================================
# Application Bootstrap
# ============================================================================


async def _startup(create_schema: bool) -> ServiceContainer:
    """Bring up every infrastructure component."""
    logger.info("========== CORTEX INITIALIZATION START ==========")

    Config.validate()
    logger.info("✓ Configuration validated", extra=Config.get_config_summary())

    container = ServiceContainer.build(Config)
    try:
        await container.startup()
        logger.info("✓ Service container started")

        if create_schema:
            await container.db.create_tables()
            logger.info("✓ Schema created")
    except Exception:
        await container.shutdown()
        raise

    logger.info("========== INFRASTRUCTURE INITIALIZED SUCCESSFULLY ==========")
    return container


# ============================================================================
# Application Shutdown
# ============================================================================


async def _shutdown(container: Optional[ServiceContainer]) -> None:
    logger.info("========== CORTEX SHUTDOWN START ==========")

    if container is not None:
        try:
            await container.shutdown()
            logger.info("✓ Service container shut down")
        except Exception as exc:
            logger.error(f"Service container shutdown error: {exc}", exc_info=True)

    logger.info("========== SHUTDOWN COMPLETE ==========")


# ============================================================================
# Application Entrypoint
# ============================================================================


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cortex question catalog")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create any missing tables before the health check",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Exit non-zero when the cache is unreachable as well",
    )
    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Start the component graph, report health and shut down.

    Returns the process exit code: 0 when the database is reachable (and,
    with ``--check``, the cache too), 1 otherwise.
    """
    args = _parse_args(argv)
    setup_logging()

    container: Optional[ServiceContainer] = None
    try:
        container = await _startup(args.create_schema)
        health = await container.health_check()
        logger.info("Health check", extra=health)

        healthy = health["database"] and (health["cache"] or not args.check)
        return 0 if healthy else 1

    except asyncio.CancelledError:
        logger.warning("Asyncio task cancellation received; shutting down gracefully.")
        raise

    except Exception as exc:
        logger.critical(f"Fatal startup error: {exc}", exc_info=True)
        return 1

    finally:
        await _shutdown(container)
        shutdown_logging()


# ============================================================================
# Process Startup
# ============================================================================


def _install_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    try:
        loop.add_signal_handler(signal.SIGTERM, loop.stop)
        logger.debug("SIGTERM handler installed")
    except NotImplementedError:
        logger.debug("SIGTERM not supported on this platform (likely Windows)")


if __name__ == "__main__":
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _install_signal_handlers(loop)

    try:
        sys.exit(loop.run_until_complete(main()))
    except KeyboardInterrupt:
        logger.info("Manually stopped via keyboard interrupt.")
    finally:
        loop.close()
