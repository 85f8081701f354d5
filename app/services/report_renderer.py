"""
app/services/report_renderer.py

Renders one run into a self-contained HTML document with jinja2.

Every interpolated value is autoescaped. Narrative free text goes through
:func:`reflow_text`, which escapes first and only then adds paragraph,
line-break and emphasis markup.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup, escape

from app.domain.report import Analysis, Narrative, RenderedChart
from app.schemas.report import ReportConfig
from app.services.formatting import format_number, format_trend, humanize_metric

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
REPORT_TEMPLATE = "report.html.j2"
PRINT_STYLESHEET = "report_print.css"

TREND_UP_COLOR = "#10B981"
TREND_DOWN_COLOR = "#EF4444"
TREND_FLAT_COLOR = "#6B7280"

_MARKDOWN_HEADING = re.compile(r"(?m)(?:^|\s+)#{1,6}\s+")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SECTION_LABEL = re.compile(
    r"^((?:\d+\.\s*)?(?:EXECUTIVE SUMMARY|KEY INSIGHTS|ACTIONABLE RECOMMENDATIONS|"
    r"RECOMMENDATIONS|CHART EXPLANATIONS):?)",
    re.IGNORECASE,
)
_BOLD = re.compile(r"\*\*(.+?)\*\*")


@dataclass(frozen=True)
class MetricRow:
    label: str
    value: str
    trend: str
    glyph: str
    color: str


def report_title(config: ReportConfig) -> str:
    return f"{config.platform.value.upper()} Insight Report - {config.date_range_enum.value}"


def format_report_date(moment: datetime) -> str:
    """``Monday, October 19, 2026``."""
    return f"{moment:%A, %B} {moment.day}, {moment.year}"


def trend_glyph(trend: float) -> tuple[str, str]:
    if trend > 0:
        return "▲", TREND_UP_COLOR
    if trend < 0:
        return "▼", TREND_DOWN_COLOR
    return "▬", TREND_FLAT_COLOR


def metric_rows(analysis: Analysis) -> list[MetricRow]:
    rows = []
    for metric, total in analysis.ranked_totals():
        trend = analysis.trends.get(metric, 0.0)
        glyph, color = trend_glyph(trend)
        rows.append(
            MetricRow(
                label=humanize_metric(metric),
                value=format_number(total),
                trend=format_trend(trend),
                glyph=glyph,
                color=color,
            )
        )
    return rows


def _inline(line: str) -> str:
    escaped = str(escape(line.strip()))
    escaped = _SECTION_LABEL.sub(r"<strong>\1</strong>", escaped)
    return _BOLD.sub(r"<strong>\1</strong>", escaped)


def reflow_text(text: str | None) -> Markup:
    """
    Escape model text and turn its markdown habits into HTML breaks.

    ``#`` headings start a new paragraph, blank lines separate paragraphs,
    single newlines become ``<br>``, ``**bold**`` and section labels become
    ``<strong>``.
    """

    if not text or not text.strip():
        return Markup("")

    normalized = _MARKDOWN_HEADING.sub("\n\n", text)
    paragraphs = []
    for block in _PARAGRAPH_BREAK.split(normalized):
        lines = [_inline(line) for line in block.splitlines() if line.strip()]
        if lines:
            paragraphs.append("<p>" + "<br>".join(lines) + "</p>")
    return Markup("".join(paragraphs))


class ReportRenderer:
    """
    jinja2-backed HTML renderer for insight reports.
    """

    def __init__(self, template_dir: Path = TEMPLATE_DIR) -> None:
        self._template_dir = template_dir
        self._env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["reflow"] = reflow_text

    @property
    def print_stylesheet_path(self) -> Path:
        return self._template_dir / PRINT_STYLESHEET

    def render(
        self,
        config: ReportConfig,
        analysis: Analysis,
        charts: Sequence[RenderedChart],
        narrative: Narrative,
        generated_at: datetime,
    ) -> str:
        explanations = {item.title: item.explanation for item in narrative.chart_explanations}
        template = self._env.get_template(REPORT_TEMPLATE)
        return template.render(
            title=report_title(config),
            generated_on=format_report_date(generated_at),
            level=config.level,
            platform=config.platform.value.upper(),
            executive_summary=narrative.executive_summary,
            metric_rows=metric_rows(analysis),
            charts=[
                {
                    "title": chart.title,
                    "description": chart.description,
                    "explanation": explanations.get(chart.title, ""),
                    "src": chart.image_data_uri,
                }
                for chart in charts
            ],
            key_insights=narrative.key_insights,
            recommendations=narrative.recommendations,
            row_count=analysis.row_count,
            print_css=Markup(self.print_stylesheet_path.read_text(encoding="utf-8")),
        )
