"""
Report-run exceptions.

Fetch, storage and delivery failures propagate to the caller and end the run.
Chart, narrative and PDF failures are recovered inside their stage.
"""

from __future__ import annotations


class ReportRunError(Exception):
    """Base exception for a failed report run."""


class ConfigMissingError(ReportRunError):
    """Raised when a run is requested before any configuration is saved."""


class UpstreamError(ReportRunError):
    """
    Raised when the ad-platform API returns a non-2xx status or cannot be reached.

    ``status`` is ``None`` for transport failures (timeout, connection refused).
    """

    def __init__(self, platform: str, status: int | None, body: str) -> None:
        self.platform = platform
        self.status = status
        self.body = body
        label = status if status is not None else "request failed"
        super().__init__(f"Upstream {platform} {label}: {body}")


class ChartRenderError(ReportRunError):
    """Raised when one chart cannot be drawn."""


class NarrativeError(ReportRunError):
    """Raised when the language-model narrative cannot be produced."""


class PdfRenderError(ReportRunError):
    """Raised when the HTML report cannot be converted to PDF."""


class DeliveryConfigError(ReportRunError):
    """Raised when email delivery is requested without sender, recipient or credentials."""


class DeliverySendError(ReportRunError):
    """Raised when the email transport rejects or fails to send the report."""
