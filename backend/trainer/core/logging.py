"""
Structured logging configuration.
Storage events carry keys, counts and ids only, never stored payloads.
"""
import logging
import sys
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional

import structlog
from structlog.types import Processor

from trainer.core.config import settings


def setup_logging() -> None:
    """Configure structured logging for the application."""

    # Common processors
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        # JSON format for production
        renderer = structlog.processors.JSONRenderer()
    else:
        # Console format for development
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure root logger
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


# ========================================
# Storage Operation Logging
# ========================================

@dataclass
class StorageOperationLog:
    """Log entry for a single key-value operation."""
    operation: str
    key: Optional[str] = None
    key_count: int = 0
    start_time: float = 0.0
    duration_ms: float = 0.0
    success: bool = True
    error_type: Optional[str] = None
    error_message: Optional[str] = None


class StorageOperationLogger:
    """
    Times key-value operations and logs a summary for each.

    Usage:
        op_logger = StorageOperationLogger(logger)
        async with op_logger.track("get_many", key_count=len(keys)):
            rows = await session.execute(stmt)

    Successful operations are only logged when STORAGE_DEBUG_LOG is set;
    failures are always logged.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        enabled: Optional[bool] = None
    ):
        self.logger = logger
        self.enabled = settings.STORAGE_DEBUG_LOG if enabled is None else enabled

    @asynccontextmanager
    async def track(
        self,
        operation: str,
        key: Optional[str] = None,
        key_count: int = 0,
        **extra: Any
    ) -> AsyncGenerator[StorageOperationLog, None]:
        """Context manager for tracking one storage operation."""
        entry = StorageOperationLog(
            operation=operation,
            key=key,
            key_count=key_count,
            start_time=time.time(),
        )
        try:
            yield entry
        except Exception as e:
            entry.success = False
            entry.error_type = type(e).__name__
            entry.error_message = str(e)
            raise
        finally:
            entry.duration_ms = (time.time() - entry.start_time) * 1000
            self._finish(entry, **extra)

    def _finish(self, entry: StorageOperationLog, **extra: Any) -> None:
        if not entry.success:
            self.logger.error(
                "Storage operation failed",
                operation=entry.operation,
                key=entry.key,
                key_count=entry.key_count,
                duration_ms=round(entry.duration_ms, 2),
                error_type=entry.error_type,
                error_message=entry.error_message,
                **extra
            )
        elif self.enabled:
            self.logger.debug(
                "Storage operation completed",
                operation=entry.operation,
                key=entry.key,
                key_count=entry.key_count,
                duration_ms=round(entry.duration_ms, 2),
                **extra
            )
