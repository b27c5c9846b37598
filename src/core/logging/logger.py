"""
Cortex Logging Subsystem

Purpose
-------
Provide an async-safe logging subsystem that is the single source of truth
for Cortex observability, offering:

- Structured JSON logs for aggregation and analysis.
- LogContext-based propagation of request context via ContextVars.
- Correlation IDs and request IDs for end-to-end traceability.
- Async-safe logging via a QueueHandler + QueueListener architecture so
  request coroutines never block on handler I/O.
- Console handler (JSON in production, human text in development) plus a
  small rotating file handler as a local backup.

Responsibilities
----------------
- Initialize and configure the global logging stack.
- Enrich all log records with contextual fields:
  - user_id, request_id / correlation_id
  - component, operation
- Provide simple helper APIs:
  - get_logger()
  - LogContext (sync + async context manager)
  - set_log_context() / clear_log_context()

Design Decisions
----------------
- JSONFormatter is the canonical representation.
- Extra fields passed via ``logger.info("msg", extra={...})`` are merged
  into the JSON payload.
- A bounded queue drops records instead of blocking during log storms.

Dependencies
------------
- src.core.config.config.Config
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from src.core.config.config import Config


# ============================================================================
# Request Context (ContextVars)
# ============================================================================

_request_context: ContextVar[Dict[str, Any]] = ContextVar(
    "request_context",
    default={},
)


# ============================================================================
# Config / Environment
# ============================================================================


@dataclass(frozen=True)
class LoggerConfig:
    """Configuration for the logging subsystem."""

    CONSOLE_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    DAILY_BASENAME: str = "cortex_daily.json.log"
    DAILY_BACKUP_COUNT: int = 1

    QUEUE_MAX_SIZE: int = 10_000

    @property
    def log_level(self) -> int:
        level_name = Config.LOG_LEVEL if isinstance(Config.LOG_LEVEL, str) else "INFO"
        return getattr(logging, level_name.upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        if Config.LOG_JSON is None:
            return Config.is_production()
        return bool(Config.LOG_JSON)

    @property
    def logs_dir(self) -> Path:
        return Path(Config.LOGS_DIR).resolve()

    @property
    def file_logging(self) -> bool:
        return not Config.is_testing()


LOGGER_CONFIG = LoggerConfig()


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context: Dict[str, Any] = _request_context.get({})

        record.user_id = context.get("user_id", "N/A")

        correlation_id = context.get("correlation_id") or context.get("request_id")
        record.correlation_id = correlation_id or "N/A"
        record.request_id = context.get("request_id", record.correlation_id)

        record.component = context.get("component") or record.name.split(".", 1)[0]
        # Explicit extra={"operation": ...} on a record wins over the context
        if not hasattr(record, "operation"):
            record.operation = context.get("operation", "N/A")

        return True


class JSONFormatter(logging.Formatter):
    STANDARD_ATTRS = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }

    CONTEXT_ATTRS = {
        "user_id",
        "correlation_id",
        "request_id",
        "component",
        "operation",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        created_dt = datetime.fromtimestamp(record.created, tz=timezone.utc)

        log_data: Dict[str, Any] = {
            "timestamp": created_dt.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in self.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value not in (None, "N/A"):
                log_data[attr] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra: Dict[str, Any] = {}
        for key, val in record.__dict__.items():
            if key in self.STANDARD_ATTRS or key in self.CONTEXT_ATTRS:
                continue
            if key.startswith("_") or key in {"message", "asctime"}:
                continue
            extra[key] = val

        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, ensure_ascii=False, default=str)


# ============================================================================
# Queue Handler
# ============================================================================


class CortexQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            sys.stderr.write("Cortex logging queue full; dropping log record.\n")


# ============================================================================
# Global Setup
# ============================================================================

_queue_listener: Optional[QueueListener] = None


def _build_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOGGER_CONFIG.log_level)

    if LOGGER_CONFIG.use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt=LOGGER_CONFIG.CONSOLE_FORMAT,
                datefmt=LOGGER_CONFIG.DATE_FORMAT,
            )
        )
    return handler


def _build_daily_file_handler() -> logging.Handler:
    LOGGER_CONFIG.logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = LOGGER_CONFIG.logs_dir / LOGGER_CONFIG.DAILY_BASENAME

    handler = TimedRotatingFileHandler(
        filename=str(log_file),
        when="midnight",
        interval=1,
        backupCount=LOGGER_CONFIG.DAILY_BACKUP_COUNT,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(LOGGER_CONFIG.log_level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging() -> None:
    global _queue_listener

    root = logging.getLogger()
    if getattr(root, "_cortex_logging_initialized", False):
        return

    root.setLevel(LOGGER_CONFIG.log_level)
    root.handlers.clear()
    root.filters.clear()

    handlers = [_build_console_handler()]
    if LOGGER_CONFIG.file_logging:
        handlers.append(_build_daily_file_handler())

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(
        LOGGER_CONFIG.QUEUE_MAX_SIZE
    )
    _queue_listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    _queue_listener.start()

    queue_handler = CortexQueueHandler(log_queue)
    queue_handler.setLevel(LOGGER_CONFIG.log_level)
    # Filters on the handler run in the producing task, where the ContextVar is set
    queue_handler.addFilter(ContextFilter())
    root.addHandler(queue_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    setattr(root, "_cortex_logging_initialized", True)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": Config.ENVIRONMENT,
            "log_level": logging.getLevelName(LOGGER_CONFIG.log_level),
            "json": LOGGER_CONFIG.use_json,
            "file_logging": LOGGER_CONFIG.file_logging,
        },
    )


def shutdown_logging() -> None:
    global _queue_listener

    root = logging.getLogger()
    if not getattr(root, "_cortex_logging_initialized", False):
        return

    logging.getLogger(__name__).info("Shutting down logging subsystem.")

    if _queue_listener is not None:
        _queue_listener.stop()
        for handler in _queue_listener.handlers:
            handler.flush()
            handler.close()
        _queue_listener = None

    for handler in list(root.handlers):
        root.removeHandler(handler)

    setattr(root, "_cortex_logging_initialized", False)


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Bind request fields to every log record emitted inside the block.

    Example
    -------
    >>> async with LogContext(user_id="u_123", operation="toggle_bookmark"):
    ...     await bookmarks.toggle("u_123", "algebra", 4)
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        request_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        effective = correlation_id or request_id or self._generate_correlation_id()

        self.context: Dict[str, Any] = {
            "user_id": str(user_id) if user_id is not None else "N/A",
            "component": component,
            "operation": operation,
            "correlation_id": effective,
            "request_id": request_id or effective,
            **extra,
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    @staticmethod
    def _generate_correlation_id() -> str:
        return str(uuid.uuid4())[:8]

    def __enter__(self) -> "LogContext":
        self._token = _request_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _request_context.reset(self._token)

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(
    user_id: Optional[str] = None,
    component: Optional[str] = None,
    operation: Optional[str] = None,
    correlation_id: Optional[str] = None,
    request_id: Optional[str] = None,
    **extra: Any,
) -> None:
    current = _request_context.get({}).copy()

    if user_id is not None:
        current["user_id"] = str(user_id)
    if component is not None:
        current["component"] = component
    if operation is not None:
        current["operation"] = operation
    if correlation_id:
        current["correlation_id"] = correlation_id
    if request_id:
        current["request_id"] = request_id
        current.setdefault("correlation_id", request_id)

    current.update(extra)
    _request_context.set(current)


def clear_log_context() -> None:
    _request_context.set({})
