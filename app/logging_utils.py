"""
Structured logging helpers for report runs.
"""

from __future__ import annotations

import json
import logging
from typing import Any

_MAX_FIELD_CHARS = 2000


def _clip(value: Any) -> Any:
    # Upstream bodies can be arbitrarily large.
    if isinstance(value, str) and len(value) > _MAX_FIELD_CHARS:
        return f"{value[:_MAX_FIELD_CHARS]}...(+{len(value) - _MAX_FIELD_CHARS} chars)"
    return value


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    Long string fields are clipped so a single failed run cannot flood the log.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **{key: _clip(value) for key, value in fields.items()}}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
