"""Structured logging and request tracking."""

from taskboard.core.logging.config import configure_logging
from taskboard.core.logging.middleware import RequestLoggingMiddleware


__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
]
