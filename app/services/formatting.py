"""
Display formatting shared by insights, charts, prompts and the HTML report.
"""

from __future__ import annotations

import re

_WORD_START = re.compile(r"\b\w")


def format_number(value: float) -> str:
    """
    Compact display form: 1.2M, 3.4K, 0.123 for fractions, else two decimals.
    """

    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    if 0 < value < 1:
        return f"{value:.3f}"
    return f"{value:.2f}"


def format_plain(value: float) -> str:
    """Integral floats without a trailing ``.0``."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_trend(value: float) -> str:
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.1f}%"


def humanize_metric(metric: str) -> str:
    """
    ``cost_per_conversion`` -> ``Cost Per Conversion``; existing capitals are kept.
    """

    spaced = metric.replace("_", " ")
    return _WORD_START.sub(lambda match: match.group(0).upper(), spaced)
