"""Logging setup shared by the comparison workflow and its stages."""

from __future__ import annotations

import logging
import os
from typing import Optional

_LOGGING_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Libraries that log per epoch, per artifact or per font lookup during a comparison run.
_CHATTY_LIBRARIES = ("mlflow", "matplotlib", "tensorflow", "absl", "PIL")


def configure_logging(level: Optional[str] = None) -> str:
    """Configure root logging and return the level that was applied.

    Args:
        level: Optional string level (e.g. "INFO", "DEBUG"). If not supplied,
            falls back to the HOUSING_LOG_LEVEL environment variable and ultimately
            to ``INFO``.

    Third-party libraries in ``_CHATTY_LIBRARIES`` are held at ``WARNING``
    unless the resolved level is ``DEBUG``.
    """

    resolved_level = (level or os.getenv("HOUSING_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=resolved_level, format=_LOGGING_FORMAT)
    library_level = logging.NOTSET if resolved_level == "DEBUG" else logging.WARNING
    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)
    return resolved_level


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
