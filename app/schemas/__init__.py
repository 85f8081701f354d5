"""
app/schemas package marker.
"""

from app.schemas.report import (
    Cadence,
    DateRange,
    Delivery,
    Platform,
    ReportConfig,
    RunStatus,
    config_to_payload,
)

__all__ = [
    "Cadence",
    "DateRange",
    "Delivery",
    "Platform",
    "ReportConfig",
    "RunStatus",
    "config_to_payload",
]
