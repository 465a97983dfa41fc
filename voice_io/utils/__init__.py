"""Shared utilities."""

from .logging import LOG_FORMAT, resolve_level, set_log_level, setup_logging

__all__ = [
    "LOG_FORMAT",
    "resolve_level",
    "set_log_level",
    "setup_logging",
]
