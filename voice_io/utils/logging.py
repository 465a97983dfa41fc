"""
Logging setup for voice_io entry points.

Library modules only create ``logging.getLogger(__name__)`` loggers and
never configure handlers. The CLI and the API app call ``setup_logging``
once; the level comes from the argument, else VOICE_IO_LOG_LEVEL, else INFO.
"""

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL_ENV = "VOICE_IO_LOG_LEVEL"
PACKAGE_LOGGER = "voice_io"

# Provider SDK loggers that are chatty below WARNING
NOISY_LOGGERS = ("google.auth", "google.api_core", "grpc", "urllib3")


def resolve_level(level: str | int | None = None) -> int:
    """Numeric level for a name such as "debug"; unknown names fall back to INFO."""
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, int):
        return level
    value = getattr(logging, level.strip().upper(), None)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: str | int | None = None, debug: bool = False) -> logging.Logger:
    """
    Configure stdout logging for the voice_io package.

    Args:
        level: Level name or number. Defaults to VOICE_IO_LOG_LEVEL or INFO.
        debug: Force DEBUG (the CLI --debug flag)

    Returns:
        The package logger ("voice_io")
    """
    log_level = logging.DEBUG if debug else resolve_level(level)

    # No-op when the root logger already has handlers
    logging.basicConfig(level=log_level, format=LOG_FORMAT, stream=sys.stdout)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(log_level)
    return package_logger


def set_log_level(level: str | int) -> None:
    """Change the voice_io level at runtime."""
    logging.getLogger(PACKAGE_LOGGER).setLevel(resolve_level(level))
