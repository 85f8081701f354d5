"""Partial narrative sections recovered from a model response."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ParsedChartExplanation(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    title: str = Field(min_length=1)
    explanation: str = Field(min_length=1)


class NarrativeSections(BaseModel):
    """Best-effort parse result.

    Each field is ``None`` when its section was not found or held nothing
    usable; callers fill gaps from the deterministic narrative.
    """

    model_config = ConfigDict(frozen=True)

    executive_summary: Optional[str] = None
    key_insights: Optional[list[str]] = None
    recommendations: Optional[list[str]] = None
    chart_explanations: Optional[list[ParsedChartExplanation]] = None

    @property
    def is_complete(self) -> bool:
        return all(
            value is not None
            for value in (
                self.executive_summary,
                self.key_insights,
                self.recommendations,
                self.chart_explanations,
            )
        )
