"""Logging configuration for applications embedding speedgrabber."""
import logging
import os
from typing import Optional

from rich.logging import RichHandler


def setup_logging(debug: bool = False, silent: bool = False, log_level: Optional[str] = None) -> str:
    """
    Configure the root logger.

    Default behavior is silent unless ``debug`` or ``log_level`` is provided
    (SPEEDGRABBER_LOG_LEVEL is honoured as a fallback level name).
    Returns a string describing the effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    env_level = os.getenv("SPEEDGRABBER_LOG_LEVEL")
    if silent or (not debug and not log_level and not env_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or env_level).upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=True,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)
