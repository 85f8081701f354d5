"""
app/services/analyzer.py

Aggregates upstream rows into totals, trends, insights and a chart plan.

All functions here are pure: no I/O, no logging side effects beyond debug
output, and the same rows always produce the same Analysis.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.domain.report import Analysis, ChartSpec
from app.mappers.row_accessor import wrap_row
from app.schemas.report import ReportConfig
from app.services.formatting import format_number

logger = logging.getLogger(__name__)

GROWTH_INSIGHT_THRESHOLD = 5.0
LINE_CHART_TREND_THRESHOLD = 1.0

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ChartPolicy:
    """
    Substring heuristics deciding which extra charts a metric set earns.

    A doughnut is added when the metric set has at least one cost-like and
    one outcome-like metric; it then shows the ``share_keywords`` matches.
    A line chart shows metrics whose trend magnitude exceeds the threshold.
    """

    cost_keywords: tuple[str, ...] = ("cost", "spend")
    outcome_keywords: tuple[str, ...] = ("conversion", "click")
    share_keywords: tuple[str, ...] = ("spend", "conversion", "click")
    share_chart_cap: int = 5
    trend_chart_cap: int = 4
    trend_threshold: float = LINE_CHART_TREND_THRESHOLD


DEFAULT_CHART_POLICY = ChartPolicy()


def to_number(value: Any) -> float | None:
    """
    Coerce an upstream value to float; ``None`` when it is not numeric.

    Infinite values and digit-grouped strings such as ``"1_000"`` are
    treated as not numeric.
    """

    if value is None:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "_" in stripped:
            return None
        try:
            number = float(stripped)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def round_total(value: float) -> float:
    """
    Round to two decimals, halves away from zero.

    The shortest decimal repr of the float is rounded, so binary noise such
    as 1.005 -> 1.00499999... does not pull a half down.
    """

    if not math.isfinite(value):
        return value
    return float(Decimal(repr(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def _matches(metric: str, keywords: Sequence[str]) -> bool:
    return any(keyword in metric for keyword in keywords)


class ReportAnalyzer:
    """
    Turns one run's rows into an :class:`Analysis`.
    """

    def __init__(self, policy: ChartPolicy = DEFAULT_CHART_POLICY) -> None:
        self._policy = policy

    def analyze(self, rows: Sequence[Any], config: ReportConfig) -> Analysis:
        metrics = list(dict.fromkeys(config.metrics))
        sums: dict[str, float] = {metric: 0.0 for metric in metrics}
        series: dict[str, list[tuple[str, float]]] = {metric: [] for metric in metrics}

        for raw in rows:
            row = wrap_row(raw)
            date = row.get_date()
            for metric in metrics:
                value = to_number(row.get_metric(metric))
                if value is None:
                    continue
                sums[metric] += value
                if date:
                    series[metric].append((date, value))

        totals = {metric: round_total(total) for metric, total in sums.items()}
        trends = {metric: self._trend(points) for metric, points in series.items()}
        insights = self._insights(totals, trends)
        charts = self.recommend_charts(metrics, trends)

        logger.debug(
            "Analyzed rows=%d metrics=%d charts=%d",
            len(rows),
            len(metrics),
            len(charts),
        )
        return Analysis(
            totals=totals,
            trends=trends,
            insights=insights,
            recommended_charts=charts,
            raw_rows=list(rows),
        )

    @staticmethod
    def _trend(points: list[tuple[str, float]]) -> float:
        if len(points) < 2:
            return 0.0
        ordered = sorted(points, key=lambda point: point[0])
        first = ordered[0][1]
        last = ordered[-1][1]
        if first <= 0:
            return 0.0
        return (last - first) / first * 100

    @staticmethod
    def _insights(totals: dict[str, float], trends: dict[str, float]) -> list[str]:
        insights: list[str] = []
        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        if ranked:
            top_metric, top_value = ranked[0]
            insights.append(f"Highest performing metric: {top_metric} ({format_number(top_value)})")

        growing = [(m, t) for m, t in trends.items() if t > GROWTH_INSIGHT_THRESHOLD]
        declining = [(m, t) for m, t in trends.items() if t < -GROWTH_INSIGHT_THRESHOLD]
        if growing:
            listed = ", ".join(f"{metric} (+{trend:.1f}%)" for metric, trend in growing)
            insights.append(f"Growing metrics: {listed}")
        if declining:
            listed = ", ".join(f"{metric} ({trend:.1f}%)" for metric, trend in declining)
            insights.append(f"Declining metrics: {listed}")
        return insights

    def recommend_charts(self, metrics: Sequence[str], trends: dict[str, float]) -> list[ChartSpec]:
        """
        Bar overview always; doughnut for cost-vs-outcome sets; line for movers.
        """

        policy = self._policy
        charts = [
            ChartSpec(
                type="bar",
                title="Metrics Overview",
                description="Comparison of all selected metrics",
                metrics=tuple(metrics),
            )
        ]

        has_cost = any(_matches(metric, policy.cost_keywords) for metric in metrics)
        has_outcome = any(_matches(metric, policy.outcome_keywords) for metric in metrics)
        if has_cost and has_outcome:
            share = [metric for metric in metrics if _matches(metric, policy.share_keywords)]
            charts.append(
                ChartSpec(
                    type="doughnut",
                    title="Performance Distribution",
                    description="Breakdown of key performance indicators",
                    metrics=tuple(share[: policy.share_chart_cap]),
                )
            )

        trending = [metric for metric, trend in trends.items() if abs(trend) > policy.trend_threshold]
        if trending:
            charts.append(
                ChartSpec(
                    type="line",
                    title="Trend Analysis",
                    description="Metrics showing significant changes over time",
                    metrics=tuple(trending[: policy.trend_chart_cap]),
                )
            )
        return charts
