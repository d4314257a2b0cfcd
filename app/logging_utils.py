"""
Logging helpers shared by the metrics engine.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the host process.

    The level comes from *level* or the ``LOG_LEVEL`` environment variable.
    Hosts that already configure logging can skip this call.
    """

    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=_LOG_FORMAT,
    )


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
