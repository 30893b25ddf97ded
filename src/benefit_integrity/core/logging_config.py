"""
Logging setup for scripts and services embedding the engine.
"""

import logging

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    """
    Configure root logging once for the process.

    Args:
        level: Log level name or number; defaults to ``settings.log_level``
    """
    resolved = level if level is not None else settings.log_level
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("benefit_integrity").setLevel(resolved)
