"""
app/mappers/row_accessor.py

Uniform access to the two upstream row shapes.

Flat rows carry metrics at the top level with the date under one of
``stat_time_day``, ``date_start`` or ``date``::

    {"spend": "12.5", "clicks": 40, "date_start": "2024-05-01"}

Nested rows split dimensions from metrics::

    {"dimensions": {"stat_time_day": "2024-05-01"}, "metrics": {"spend": "12.5"}}

A row is nested when it has both a ``metrics`` and a ``dimensions`` mapping.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

_FLAT_DATE_KEYS = ("stat_time_day", "date_start", "date")


class RowAccessor(ABC):
    """
    Read-only view over one upstream row.
    """

    def __init__(self, raw: Mapping[str, Any]) -> None:
        self.raw = raw

    @abstractmethod
    def get_metric(self, name: str) -> Any:
        """Return the raw metric value, or ``None`` when absent."""

    @abstractmethod
    def get_date(self) -> str | None:
        """Return the row's date as a sortable string, or ``None``."""


class FlatRow(RowAccessor):
    def get_metric(self, name: str) -> Any:
        return self.raw.get(name)

    def get_date(self) -> str | None:
        for key in _FLAT_DATE_KEYS:
            value = self.raw.get(key)
            if value:
                return str(value)
        return None


class NestedRow(RowAccessor):
    def get_metric(self, name: str) -> Any:
        return self.raw["metrics"].get(name)

    def get_date(self) -> str | None:
        value = self.raw["dimensions"].get("stat_time_day")
        return str(value) if value else None


class _EmptyRow(RowAccessor):
    def get_metric(self, name: str) -> Any:
        return None

    def get_date(self) -> str | None:
        return None


def is_nested_row(raw: Any) -> bool:
    return (
        isinstance(raw, Mapping)
        and isinstance(raw.get("metrics"), Mapping)
        and isinstance(raw.get("dimensions"), Mapping)
    )


def wrap_row(raw: Any) -> RowAccessor:
    """
    Select the accessor for ``raw``. Non-mapping rows yield no values.
    """

    if is_nested_row(raw):
        return NestedRow(raw)
    if isinstance(raw, Mapping):
        return FlatRow(raw)
    return _EmptyRow({})
