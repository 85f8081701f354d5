"""Sectioned prompt builder for report narratives."""

from typing import List, Optional, Sequence, Tuple

from app.domain.report import Analysis, ChartSpec
from app.schemas.report import ReportConfig
from app.services.formatting import format_number, format_trend, humanize_metric

SYSTEM_PROMPT = """\
You are an expert digital marketing analyst writing a performance report \
for an advertising account.

STRICT RULES:
- Use ONLY the data provided. Do not invent metrics or numbers.
- Answer with the four numbered sections requested, in order.
- Use "- " bullets inside list sections.
"""

SECTION_TITLES = (
    "EXECUTIVE SUMMARY",
    "KEY INSIGHTS",
    "ACTIONABLE RECOMMENDATIONS",
    "CHART EXPLANATIONS",
)

_TASK = """\
Write the report in exactly these sections:

1. EXECUTIVE SUMMARY:
Two or three sentences on overall performance.

2. KEY INSIGHTS:
Three to five bullets on notable patterns in the data.

3. ACTIONABLE RECOMMENDATIONS:
Three to five concrete bullets the advertiser can act on.

4. CHART EXPLANATIONS:
One bullet per chart, formatted as "- <chart title>: <explanation>".
"""


class NarrativePromptBuilder:
    """Builds a deterministic prompt from one run's analysis.

    The same configuration and analysis always produce the same prompt
    text, which keeps model calls reproducible in logs.
    """

    system_prompt = SYSTEM_PROMPT

    def build_prompt(
        self,
        config: ReportConfig,
        analysis: Analysis,
        charts: Optional[Sequence[ChartSpec]] = None,
    ) -> str:
        """Build the user prompt.

        Args:
            config: The report configuration for the run.
            analysis: Totals, trends and preliminary insights.
            charts: Charts the report will show; defaults to the
                analysis' recommended charts.

        Returns:
            The prompt string ready for the adapter.
        """
        charts = analysis.recommended_charts if charts is None else charts

        parts = [
            "# REPORT CONTEXT",
            f"Platform: {config.platform.value.upper()}",
            f"Date range: {config.date_range_enum.value}",
            f"Level: {config.level}",
            f"Rows analysed: {analysis.row_count}",
            "",
            "# METRIC TOTALS",
            *self._format_totals(analysis.ranked_totals()),
            "",
            "# TRENDS (first vs last dated value)",
            *self._format_trends(analysis),
            "",
            "# PRELIMINARY INSIGHTS",
            *(f"- {insight}" for insight in analysis.insights or ["None"]),
            "",
            "# CHARTS IN THIS REPORT",
            *(f"- {chart.title}: {chart.description}" for chart in charts),
            "",
            "# TASK",
            _TASK,
        ]
        return "\n".join(parts)

    @staticmethod
    def _format_totals(ranked: List[Tuple[str, float]]) -> List[str]:
        if not ranked:
            return ["- No metrics"]
        return [f"- {humanize_metric(metric).upper()}: {format_number(value)}" for metric, value in ranked]

    @staticmethod
    def _format_trends(analysis: Analysis) -> List[str]:
        return [
            f"- {humanize_metric(metric)}: {format_trend(trend)}"
            for metric, trend in analysis.trends.items()
        ] or ["- No trend data"]
