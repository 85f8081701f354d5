"""
app/domain/report.py

Transient per-run models. Nothing here outlives a single pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ChartKind = Literal["bar", "line", "pie", "doughnut"]


@dataclass(frozen=True)
class ChartSpec:
    """
    One recommended chart: what to draw and over which metrics.
    """

    type: ChartKind
    title: str
    description: str
    metrics: tuple[str, ...]


@dataclass(frozen=True)
class Analysis:
    """
    Aggregates derived from one run's upstream rows.
    """

    totals: dict[str, float]
    trends: dict[str, float]
    insights: list[str]
    recommended_charts: list[ChartSpec]
    raw_rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.raw_rows)

    def ranked_totals(self) -> list[tuple[str, float]]:
        """Totals ordered by value, largest first; ties keep metric order."""
        return sorted(self.totals.items(), key=lambda item: item[1], reverse=True)


@dataclass(frozen=True)
class RenderedChart:
    type: ChartKind
    title: str
    description: str
    image_data_uri: str


@dataclass(frozen=True)
class ChartExplanation:
    title: str
    explanation: str


@dataclass(frozen=True)
class Narrative:
    """
    Executive summary, key insights and recommendations for one report.
    """

    executive_summary: str
    key_insights: list[str]
    recommendations: list[str]
    chart_explanations: list[ChartExplanation] = field(default_factory=list)
    source: Literal["llm", "fallback", "partial"] = "fallback"


@dataclass(frozen=True)
class StoredReport:
    file_name: str
    path: str
    url: str


@dataclass(frozen=True)
class ReportRunResult:
    """
    Outcome of one successful pipeline run.
    """

    html_url: str
    pdf_url: str | None
    emailed: bool
    charts_rendered: int
    row_count: int
    totals: dict[str, float] = field(default_factory=dict)
