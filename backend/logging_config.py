"""
Nano - Structured JSON Logging

Provides structured logging for production environments.
Outputs JSON format for log aggregation; plain text in development.
Each Discord interaction can tag subsequent log lines with its context.
"""

import logging
import json
import sys
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import traceback
from contextvars import ContextVar

_interaction_context: ContextVar = ContextVar(
    "interaction_context", default=(None, None, None)
)


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs JSON logs.
    Compatible with log aggregation services.
    """

    def __init__(self, service_name: str = "nano"):
        super().__init__()
        self.service_name = service_name
        self.environment = os.environ.get("ENVIRONMENT", "development")
        self.hostname = os.environ.get("HOSTNAME", "unknown")

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
            "hostname": self.hostname,
        }

        # Add location info
        log_data["location"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None,
            }

        # Add extra fields
        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in [
                "name", "msg", "args", "created", "filename", "funcName",
                "levelname", "levelno", "lineno", "module", "msecs",
                "pathname", "process", "processName", "relativeCreated",
                "stack_info", "exc_info", "exc_text", "thread", "threadName",
                "message", "taskName"
            ]
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class InteractionContextFilter(logging.Filter):
    """
    Adds the current Discord interaction to log records.

    Context is held per asyncio task, so concurrent interactions do not
    overwrite each other.
    """

    def set_interaction_context(
        self,
        interaction_id: Optional[int] = None,
        user_id: Optional[int] = None,
        custom_id: Optional[str] = None
    ):
        _interaction_context.set((interaction_id, user_id, custom_id))

    def clear_interaction_context(self):
        _interaction_context.set((None, None, None))

    def filter(self, record: logging.LogRecord) -> bool:
        record.interaction_id, record.user_id, record.custom_id = _interaction_context.get()
        return True


# Global interaction context filter instance
_interaction_context_filter: Optional[InteractionContextFilter] = None


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "nano"
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True for production)
        service_name: Service name for log aggregation

    Returns:
        Configured root logger
    """
    global _interaction_context_filter

    # Get root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Set formatter based on environment
    if json_format:
        handler.setFormatter(JSONFormatter(service_name=service_name))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))

    # Add interaction context filter
    _interaction_context_filter = InteractionContextFilter()
    handler.addFilter(_interaction_context_filter)

    # Add handler
    root_logger.addHandler(handler)

    # Suppress noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("discord.gateway").setLevel(logging.ERROR)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)


def set_interaction_context(
    interaction_id: Optional[int] = None,
    user_id: Optional[int] = None,
    custom_id: Optional[str] = None
):
    """Set interaction context for logging."""
    if _interaction_context_filter:
        _interaction_context_filter.set_interaction_context(interaction_id, user_id, custom_id)


def clear_interaction_context():
    """Clear interaction context."""
    if _interaction_context_filter:
        _interaction_context_filter.clear_interaction_context()
