"""Logging configuration for the viewer and demo apps.

Library modules only call ``logging.getLogger(__name__)``; applications
call :func:`setup_logging` once at startup.
"""

import logging
import sys


def setup_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
) -> None:
    """Configure console logging for the ``reflex_filter_grid`` loggers.

    Args:
        level: Logging level (e.g. ``logging.DEBUG``).
        format_string: Optional custom format string for log messages.
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_string))

    logging.basicConfig(
        level=level,
        handlers=[console_handler],
        format=format_string,
        force=True,
    )

    # Reflex and its web stack are chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
