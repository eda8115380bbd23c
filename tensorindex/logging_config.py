"""Structured logging configuration.

Every module logs through ``get_logger(__name__)``, which only binds a
name; the processor pipeline belongs to the application. Applications
that want the library's JSON output call ``configure_logging()`` once.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog


def configure_logging(level: int = logging.INFO) -> None:
    """Install a JSON structlog pipeline filtered at the given level.

    Args:
        level: Minimum stdlib level to emit, e.g. logging.DEBUG.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to a module name.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A lazy structlog logger using whatever configuration is active.
    """
    return structlog.get_logger(name)
