"""
app/services package marker.
"""

from app.services.errors import (
    ChartRenderError,
    ConfigMissingError,
    DeliveryConfigError,
    DeliverySendError,
    NarrativeError,
    PdfRenderError,
    ReportRunError,
    UpstreamError,
)

__all__ = [
    "ChartRenderError",
    "ConfigMissingError",
    "DeliveryConfigError",
    "DeliverySendError",
    "NarrativeError",
    "PdfRenderError",
    "ReportRunError",
    "UpstreamError",
]
