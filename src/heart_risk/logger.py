"""Logging setup and the per-call usage log."""

import logging
import os
import uuid
from typing import Any, Optional

from .config import Settings

USAGE_LOGGER = "heart_risk.usage"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging from ``settings``.

    Adds a file handler for the usage logger when ``usage_log_file`` is set.
    Safe to call more than once; the usage file handler is only attached once.
    """
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    logging.getLogger().setLevel(settings.log_level.upper())

    if settings.usage_log_file:
        usage = logging.getLogger(USAGE_LOGGER)
        path = os.path.abspath(settings.usage_log_file)
        already = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == path
            for h in usage.handlers
        )
        if not already:
            handler = logging.FileHandler(path)
            handler.setFormatter(logging.Formatter("%(asctime)s | %(message)s"))
            usage.addHandler(handler)


def log_usage(tool_name: str, inputs: Any, outputs: Optional[Any] = None) -> str:
    """Write one usage line tagged with a short random session id.

    Returns
    -------
    str
        The session id written to the log line.
    """
    session_id = uuid.uuid4().hex[:8]
    logging.getLogger(USAGE_LOGGER).info(
        f"session={session_id} tool={tool_name} inputs={inputs} outputs={outputs}"
    )
    return session_id
