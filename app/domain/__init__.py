"""
app/domain package marker.
"""

from app.domain.report import (
    Analysis,
    ChartExplanation,
    ChartSpec,
    Narrative,
    RenderedChart,
    ReportRunResult,
    StoredReport,
)

__all__ = [
    "Analysis",
    "ChartExplanation",
    "ChartSpec",
    "Narrative",
    "RenderedChart",
    "ReportRunResult",
    "StoredReport",
]
