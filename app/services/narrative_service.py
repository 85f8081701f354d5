"""
app/services/narrative_service.py

Produces the report narrative: executive summary, key insights,
recommendations and chart explanations.

With no model configured the narrative is fully deterministic. With a model,
each section parsed from the response replaces its deterministic counterpart;
missing sections and failed calls fall back field by field.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from app.domain.report import Analysis, ChartExplanation, ChartSpec, Narrative
from app.logging_utils import log_event
from app.schemas.report import Platform, ReportConfig
from app.services.errors import NarrativeError
from app.services.formatting import format_number, format_plain
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.parser import parse_narrative
from llm_synthesis.prompt_builder import NarrativePromptBuilder

logger = logging.getLogger(__name__)

DECLINE_THRESHOLD = -10.0
GROWTH_THRESHOLD = 15.0

PLATFORM_TIPS = {
    Platform.META: "Consider A/B testing different ad creative formats to improve engagement rates",
    Platform.TIKTOK: "Leverage trending hashtags and music to increase organic reach and engagement",
}


def fallback_summary(analysis: Analysis, config: ReportConfig) -> str:
    ranked = analysis.ranked_totals()
    if ranked:
        top_metric, top_value = ranked[0]
        highest = f"{top_metric}={format_plain(top_value)}"
    else:
        highest = "n/a"
    return "\n".join(
        [
            f"• {config.platform.value} {config.date_range_enum.value} at {config.level} level processed successfully.",
            f"• Highest total metric: {highest}.",
            "• Review chart for quick relative magnitudes.",
        ]
    )


def fallback_recommendations(analysis: Analysis, config: ReportConfig) -> list[str]:
    """
    Rule-based recommendations from totals and trends, plus a platform tip.
    """

    recommendations: list[str] = []
    ranked = analysis.ranked_totals()
    if ranked and "spend" in ranked[0][0].lower():
        top_metric, top_value = ranked[0]
        recommendations.append(
            f"Monitor spending efficiency - {top_metric} represents {format_number(top_value)} of total budget allocation"
        )

    declining = [metric for metric, trend in analysis.trends.items() if trend < DECLINE_THRESHOLD]
    if declining:
        recommendations.append(
            f"Address declining metrics: {', '.join(declining)} show negative trends"
        )

    growing = [metric for metric, trend in analysis.trends.items() if trend > GROWTH_THRESHOLD]
    if growing:
        recommendations.append(
            f"Scale successful campaigns - {', '.join(growing)} show strong positive momentum"
        )

    recommendations.append(PLATFORM_TIPS[config.platform])
    return recommendations


def fallback_chart_explanations(charts: Sequence[ChartSpec], *, detailed: bool) -> list[ChartExplanation]:
    """
    ``detailed`` appends the metric list; it is used when no model was asked.
    """

    explanations = []
    for chart in charts:
        text = chart.description
        if detailed:
            text = f"{chart.description} - showing {', '.join(chart.metrics)}"
        explanations.append(ChartExplanation(title=chart.title, explanation=text))
    return explanations


class NarrativeService:
    """
    Narrative generation with per-field deterministic fallback.
    """

    def __init__(
        self,
        adapter: BaseLLMAdapter | None = None,
        prompt_builder: NarrativePromptBuilder | None = None,
    ) -> None:
        self._adapter = adapter
        self._prompt_builder = prompt_builder or NarrativePromptBuilder()

    @property
    def uses_model(self) -> bool:
        return self._adapter is not None

    def narrate(
        self,
        analysis: Analysis,
        config: ReportConfig,
        charts: Sequence[ChartSpec] | None = None,
    ) -> Narrative:
        charts = list(analysis.recommended_charts if charts is None else charts)
        if self._adapter is None:
            return self._deterministic(analysis, config, charts)

        try:
            raw = self._generate(analysis, config, charts)
        except NarrativeError as exc:
            log_event(
                logger,
                logging.WARNING,
                "narrative_fallback",
                stage="narrate",
                platform=config.platform.value,
                error=str(exc),
            )
            return Narrative(
                executive_summary=fallback_summary(analysis, config),
                key_insights=list(analysis.insights),
                recommendations=fallback_recommendations(analysis, config),
                chart_explanations=fallback_chart_explanations(charts, detailed=False),
                source="fallback",
            )

        parsed = parse_narrative(raw, chart_titles=[chart.title for chart in charts])
        explained = {item.title: item.explanation for item in parsed.chart_explanations or []}
        chart_explanations = [
            ChartExplanation(title=chart.title, explanation=explained.get(chart.title, chart.description))
            for chart in charts
        ]
        if not parsed.is_complete:
            logger.info("Narrative response missing sections; filling from deterministic text")

        return Narrative(
            executive_summary=parsed.executive_summary or fallback_summary(analysis, config),
            key_insights=parsed.key_insights or list(analysis.insights),
            recommendations=parsed.recommendations or fallback_recommendations(analysis, config),
            chart_explanations=chart_explanations,
            source="llm" if parsed.is_complete else "partial",
        )

    def _generate(self, analysis: Analysis, config: ReportConfig, charts: list[ChartSpec]) -> str:
        prompt = self._prompt_builder.build_prompt(config, analysis, charts)
        try:
            raw = self._adapter.generate(prompt, system=self._prompt_builder.system_prompt)
        except Exception as exc:  # noqa: BLE001
            raise NarrativeError(f"Narrative model call failed: {exc}") from exc
        if not raw or not raw.strip():
            raise NarrativeError("Narrative model returned an empty response")
        return raw

    @staticmethod
    def _deterministic(analysis: Analysis, config: ReportConfig, charts: list[ChartSpec]) -> Narrative:
        return Narrative(
            executive_summary=fallback_summary(analysis, config),
            key_insights=list(analysis.insights),
            recommendations=fallback_recommendations(analysis, config),
            chart_explanations=fallback_chart_explanations(charts, detailed=True),
            source="fallback",
        )
