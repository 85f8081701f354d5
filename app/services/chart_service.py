"""
app/services/chart_service.py

Renders the recommended charts to PNG data URIs with matplotlib.

Uses the object-oriented ``Figure`` API on the Agg backend so charts can be
drawn from the scheduler's worker thread without touching pyplot state.
"""

from __future__ import annotations

import base64
import io
import logging
from itertools import cycle, islice

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend

import numpy as np
from matplotlib.figure import Figure
from matplotlib.ticker import FuncFormatter

from app.domain.report import Analysis, ChartSpec, RenderedChart
from app.logging_utils import log_event
from app.services.errors import ChartRenderError
from app.services.formatting import format_number, humanize_metric

logger = logging.getLogger(__name__)

PALETTE = (
    "#3B82F6",
    "#EF4444",
    "#10B981",
    "#F59E0B",
    "#8B5CF6",
    "#06B6D4",
    "#84CC16",
    "#F97316",
    "#EC4899",
    "#6366F1",
)
LINE_COLOR = "#3B82F6"

FIGURE_SIZE_INCHES = (8.0, 6.0)
FIGURE_DPI = 100
TITLE_FONT_SIZE = 18
DOUGHNUT_RING_WIDTH = 0.45
SMOOTHING_SAMPLES = 24


def chart_series(spec: ChartSpec, analysis: Analysis) -> tuple[list[str], list[float]]:
    """
    Labels and values for ``spec``, limited to metrics that have a total.
    """

    present = [metric for metric in spec.metrics if metric in analysis.totals]
    labels = [humanize_metric(metric) for metric in present]
    values = [analysis.totals[metric] for metric in present]
    return labels, values


def _palette(count: int) -> list[str]:
    return list(islice(cycle(PALETTE), count))


def _smooth(values: list[float]) -> tuple[np.ndarray, np.ndarray]:
    """
    Catmull-Rom interpolation through the points; returns (x, y) samples.
    """

    points = np.asarray(values, dtype=float)
    x = np.arange(len(points), dtype=float)
    if len(points) < 3:
        return x, points

    padded = np.concatenate(([points[0]], points, [points[-1]]))
    xs: list[float] = []
    ys: list[float] = []
    t = np.linspace(0.0, 1.0, SMOOTHING_SAMPLES, endpoint=False)
    for i in range(len(points) - 1):
        p0, p1, p2, p3 = padded[i : i + 4]
        segment = 0.5 * (
            2 * p1
            + (-p0 + p2) * t
            + (2 * p0 - 5 * p1 + 4 * p2 - p3) * t**2
            + (-p0 + 3 * p1 - 3 * p2 + p3) * t**3
        )
        xs.extend(i + t)
        ys.extend(segment)
    xs.append(x[-1])
    ys.append(points[-1])
    return np.asarray(xs), np.asarray(ys)


class ChartGenerator:
    """
    Draws bar, pie/doughnut and line charts from an :class:`Analysis`.
    """

    def render_all(self, analysis: Analysis) -> list[RenderedChart]:
        """
        Render every recommended chart; a chart that fails is logged and skipped.
        """

        rendered: list[RenderedChart] = []
        for spec in analysis.recommended_charts:
            try:
                rendered.append(self.render(spec, analysis))
            except ChartRenderError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "chart_render_failed",
                    stage="chart",
                    chart=spec.title,
                    chart_type=spec.type,
                    error=str(exc),
                )
        return rendered

    def render(self, spec: ChartSpec, analysis: Analysis) -> RenderedChart:
        labels, values = chart_series(spec, analysis)
        if not values:
            raise ChartRenderError(f"No data for chart '{spec.title}'")

        try:
            png = self._draw(spec, labels, values)
        except ChartRenderError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ChartRenderError(f"Failed to draw chart '{spec.title}': {exc}") from exc

        encoded = base64.b64encode(png).decode("ascii")
        return RenderedChart(
            type=spec.type,
            title=spec.title,
            description=spec.description,
            image_data_uri=f"data:image/png;base64,{encoded}",
        )

    def _draw(self, spec: ChartSpec, labels: list[str], values: list[float]) -> bytes:
        figure = Figure(figsize=FIGURE_SIZE_INCHES, dpi=FIGURE_DPI, facecolor="white")
        axes = figure.add_subplot(1, 1, 1)

        if spec.type == "bar":
            self._draw_bar(axes, labels, values)
        elif spec.type in ("pie", "doughnut"):
            self._draw_pie(axes, labels, values, doughnut=spec.type == "doughnut")
        elif spec.type == "line":
            self._draw_line(axes, labels, values)
        else:
            raise ChartRenderError(f"Unsupported chart type: {spec.type}")

        axes.set_title(spec.title, fontsize=TITLE_FONT_SIZE, fontweight="bold")
        figure.tight_layout()

        buffer = io.BytesIO()
        figure.savefig(buffer, format="png", facecolor="white")
        return buffer.getvalue()

    @staticmethod
    def _value_axis(axes) -> None:
        axes.set_ylim(bottom=0)
        axes.yaxis.set_major_formatter(FuncFormatter(lambda value, _pos: format_number(value)))
        axes.grid(axis="y", color="#E5E7EB", linewidth=0.8)
        axes.set_axisbelow(True)
        for side in ("top", "right"):
            axes.spines[side].set_visible(False)

    def _draw_bar(self, axes, labels: list[str], values: list[float]) -> None:
        colors = _palette(len(values))
        axes.bar(labels, values, color=colors, edgecolor=colors, linewidth=1)
        self._value_axis(axes)
        if len(labels) > 4:
            axes.tick_params(axis="x", labelrotation=30)

    @staticmethod
    def _draw_pie(axes, labels: list[str], values: list[float], *, doughnut: bool) -> None:
        if any(value < 0 for value in values):
            raise ChartRenderError("Pie charts cannot show negative totals")
        if sum(values) <= 0:
            raise ChartRenderError("Pie charts need at least one positive total")

        wedge_props = {"edgecolor": "white", "linewidth": 2}
        if doughnut:
            wedge_props["width"] = DOUGHNUT_RING_WIDTH
        wedges, _texts = axes.pie(values, colors=_palette(len(values)), startangle=90, wedgeprops=wedge_props)
        axes.axis("equal")
        axes.legend(
            wedges,
            labels,
            loc="upper center",
            bbox_to_anchor=(0.5, -0.02),
            ncol=min(len(labels), 3),
            frameon=False,
            handlelength=1.0,
        )

    def _draw_line(self, axes, labels: list[str], values: list[float]) -> None:
        x_smooth, y_smooth = _smooth(values)
        axes.plot(x_smooth, y_smooth, color=LINE_COLOR, linewidth=3, label="Trend")
        axes.fill_between(x_smooth, y_smooth, color=LINE_COLOR, alpha=0.1)
        axes.scatter(range(len(values)), values, color=LINE_COLOR, zorder=3)
        axes.set_xticks(range(len(labels)))
        axes.set_xticklabels(labels)
        self._value_axis(axes)
