"""
app/mappers/row_extractor.py

Normalizes the sample-data response body into a list of row records.

The upstream does not fix its envelope across platforms and levels, so the
first matching shape wins:

    list -> rows -> data -> results -> list key -> bare object -> nothing
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

_ENVELOPE_KEYS = ("rows", "data", "results", "list")


def extract_rows(raw: Any) -> list[Any]:
    """
    Return the row sequence contained in ``raw``. Never raises.
    """

    if isinstance(raw, list):
        return list(raw)
    if isinstance(raw, dict):
        for key in _ENVELOPE_KEYS:
            candidate = raw.get(key)
            if isinstance(candidate, list):
                logger.debug("Extracted %d rows from envelope key=%s", len(candidate), key)
                return list(candidate)
        return [raw]
    return []
