"""
tests/test_narrative.py

Section parsing, prompt construction and the per-field fallback of
NarrativeService. No network: adapters are in-process fakes.
"""

from __future__ import annotations

import pytest

from app.config import LLMSettings
from app.services.analyzer import ReportAnalyzer
from app.services.narrative_service import NarrativeService, fallback_recommendations, fallback_summary
from llm_synthesis.adapter import BaseLLMAdapter, MockLLMAdapter, OpenAILLMAdapter, build_llm_adapter
from llm_synthesis.parser import parse_narrative
from llm_synthesis.prompt_builder import NarrativePromptBuilder


class _FailingAdapter(BaseLLMAdapter):
    def generate(self, prompt, system=None):
        raise RuntimeError("401 invalid api key")


class _StaticAdapter(BaseLLMAdapter):
    def __init__(self, text: str) -> None:
        self.text = text
        self.prompts: list[str] = []

    def generate(self, prompt, system=None):
        self.prompts.append(prompt)
        return self.text


@pytest.fixture()
def analysis(sample_rows, make_config):
    return ReportAnalyzer().analyze(sample_rows, make_config())


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestParseNarrative:
    def test_numbered_sections(self) -> None:
        text = MockLLMAdapter().generate("ignored")
        parsed = parse_narrative(text, chart_titles=["Metrics Overview", "Trend Analysis"])

        assert parsed.is_complete
        assert parsed.executive_summary.startswith("Spend was steady")
        assert parsed.key_insights == ["Conversions grew faster than spend", "Click volume stayed flat"]
        assert len(parsed.recommendations) == 2
        assert [item.title for item in parsed.chart_explanations] == ["Metrics Overview"]

    def test_markdown_headings_bullets_and_emphasis(self) -> None:
        text = (
            "Here is your report.\n"
            "## Executive Summary\n"
            "Spend rose **sharply** this week.\n"
            "\n"
            "## Key Insights\n"
            "• First insight\n"
            "* Second insight\n"
            "3. Third insight\n"
            "### Recommendations:\n"
            "- **Shift budget** to winners\n"
        )
        parsed = parse_narrative(text)

        assert parsed.executive_summary == "Spend rose sharply this week."
        assert parsed.key_insights == ["First insight", "Second insight", "Third insight"]
        assert parsed.recommendations == ["Shift budget to winners"]
        assert parsed.chart_explanations is None
        assert not parsed.is_complete

    def test_list_sections_keep_only_bullet_lines(self) -> None:
        text = (
            "KEY INSIGHTS:\n"
            "Here is what stood out in the data:\n"
            "- *Spend* rose 20%\n"
            "- Clicks flat\n"
            "RECOMMENDATIONS:\n"
            "We suggest the following.\n"
            "- Shift budget\n"
        )
        parsed = parse_narrative(text)

        assert parsed.key_insights == ["Spend rose 20%", "Clicks flat"]
        assert parsed.recommendations == ["Shift budget"]

    def test_single_marker_emphasis_is_stripped_but_identifiers_survive(self) -> None:
        parsed = parse_narrative("INSIGHTS:\n- _Clicks_ held while cost_per_conversion fell *sharply*")
        assert parsed.key_insights == ["Clicks held while cost_per_conversion fell sharply"]

    def test_bold_heading_with_inline_content(self) -> None:
        parsed = parse_narrative("**1. EXECUTIVE SUMMARY:** All channels are stable.")
        assert parsed.executive_summary == "All channels are stable."

    def test_sentence_starting_with_section_word_is_not_a_heading(self) -> None:
        parsed = parse_narrative("1. EXECUTIVE SUMMARY:\nSummary of the week is positive.")
        assert parsed.executive_summary == "Summary of the week is positive."

    def test_unknown_chart_titles_are_dropped(self) -> None:
        text = "4. CHART EXPLANATIONS:\n- Made Up Chart: nothing\n- trend analysis: movement over time"
        parsed = parse_narrative(text, chart_titles=["Trend Analysis"])
        assert [(item.title, item.explanation) for item in parsed.chart_explanations] == [
            ("Trend Analysis", "movement over time")
        ]

    @pytest.mark.parametrize("text", ["", "no sections here at all", None])
    def test_unstructured_text_yields_nothing(self, text) -> None:
        parsed = parse_narrative(text)
        assert parsed.executive_summary is None
        assert parsed.key_insights is None
        assert parsed.recommendations is None


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


def test_prompt_embeds_context_totals_and_trends(analysis, make_config) -> None:
    prompt = NarrativePromptBuilder().build_prompt(make_config(), analysis)

    assert "Platform: META" in prompt
    assert "Date range: last7" in prompt
    assert "Level: campaign" in prompt
    assert "Rows analysed: 3" in prompt
    assert "- SPEND: 370.00" in prompt
    assert "- Spend: +50.0%" in prompt
    assert "- Highest performing metric: spend (370.00)" in prompt
    for heading in ("1. EXECUTIVE SUMMARY", "2. KEY INSIGHTS", "3. ACTIONABLE RECOMMENDATIONS", "4. CHART EXPLANATIONS"):
        assert heading in prompt


# ---------------------------------------------------------------------------
# Deterministic fallback
# ---------------------------------------------------------------------------


class TestFallback:
    def test_summary_lines(self, analysis, make_config) -> None:
        assert fallback_summary(analysis, make_config()).splitlines() == [
            "• meta last7 at campaign level processed successfully.",
            "• Highest total metric: spend=370.",
            "• Review chart for quick relative magnitudes.",
        ]

    def test_recommendation_rules(self, analysis, make_config) -> None:
        assert fallback_recommendations(analysis, make_config()) == [
            "Monitor spending efficiency - spend represents 370.00 of total budget allocation",
            "Scale successful campaigns - spend show strong positive momentum",
            "Consider A/B testing different ad creative formats to improve engagement rates",
        ]

    def test_declining_metrics_and_tiktok_tip(self, make_config) -> None:
        config = make_config(platform="tiktok", metrics=["clicks"])
        rows = [{"stat_time_day": "2026-01-01", "clicks": 100}, {"stat_time_day": "2026-01-02", "clicks": 50}]
        analysis = ReportAnalyzer().analyze(rows, config)
        assert fallback_recommendations(analysis, config) == [
            "Address declining metrics: clicks show negative trends",
            "Leverage trending hashtags and music to increase organic reach and engagement",
        ]


class TestNarrativeService:
    def test_without_model_everything_is_deterministic(self, analysis, make_config) -> None:
        narrative = NarrativeService().narrate(analysis, make_config())

        assert narrative.source == "fallback"
        assert narrative.key_insights == analysis.insights
        assert narrative.chart_explanations[0].explanation == (
            "Comparison of all selected metrics - showing spend, conversions"
        )

    def test_model_failure_falls_back_without_metric_lists(self, analysis, make_config) -> None:
        narrative = NarrativeService(adapter=_FailingAdapter()).narrate(analysis, make_config())

        assert narrative.source == "fallback"
        assert narrative.executive_summary == fallback_summary(analysis, make_config())
        assert narrative.chart_explanations[0].explanation == "Comparison of all selected metrics"

    def test_empty_model_response_falls_back(self, analysis, make_config) -> None:
        narrative = NarrativeService(adapter=_StaticAdapter("   ")).narrate(analysis, make_config())
        assert narrative.source == "fallback"

    def test_missing_sections_fill_field_by_field(self, analysis, make_config) -> None:
        adapter = _StaticAdapter("1. EXECUTIVE SUMMARY:\nModel summary.")
        narrative = NarrativeService(adapter=adapter).narrate(analysis, make_config())

        assert narrative.source == "partial"
        assert narrative.executive_summary == "Model summary."
        assert narrative.key_insights == analysis.insights
        assert narrative.recommendations == fallback_recommendations(analysis, make_config())
        assert len(adapter.prompts) == 1

    def test_complete_model_response(self, analysis, make_config) -> None:
        narrative = NarrativeService(adapter=MockLLMAdapter()).narrate(analysis, make_config())

        assert narrative.source == "llm"
        explanations = {item.title: item.explanation for item in narrative.chart_explanations}
        assert explanations["Metrics Overview"] == "compares the size of each metric side by side."
        assert explanations["Performance Distribution"] == "Breakdown of key performance indicators"


class TestBuildAdapter:
    def test_mock_adapter(self) -> None:
        assert isinstance(build_llm_adapter(LLMSettings(adapter="mock")), MockLLMAdapter)

    def test_no_key_means_no_model(self) -> None:
        assert build_llm_adapter(LLMSettings(api_key=None)) is None

    def test_openai_adapter_with_key(self) -> None:
        assert isinstance(build_llm_adapter(LLMSettings(api_key="sk-test")), OpenAILLMAdapter)
