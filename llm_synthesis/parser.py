"""Section parser for raw narrative responses.

Models are asked for four numbered sections but routinely drift into
markdown headings, bold labels or unnumbered titles. The parser accepts
those variants and returns whatever sections it could recover; it never
raises on malformed text.
"""

import re
from typing import Dict, List, Optional, Sequence

from llm_synthesis.schema import NarrativeSections, ParsedChartExplanation

_SECTION_KEYS = {
    "executive summary": "executive_summary",
    "summary": "executive_summary",
    "key insights": "key_insights",
    "insights": "key_insights",
    "actionable recommendations": "recommendations",
    "recommendations": "recommendations",
    "chart explanations": "chart_explanations",
}

_HEADING = re.compile(
    r"^\s*(?:#{1,6}\s*)?(?:\*\*|__)?\s*(?:\d+[.)]\s*)?(?:\*\*|__)?\s*"
    r"(?P<title>executive summary|key insights|actionable recommendations|"
    r"recommendations|chart explanations|summary|insights)"
    r"\s*(?:\*\*|__)?\s*(?::\s*(?:\*\*|__)?\s*(?P<rest>.*))?$",
    re.IGNORECASE,
)
_BULLET = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s+(?P<text>.+)$")
_EMPHASIS = re.compile(
    r"\*\*(?P<bold>.+?)\*\*"
    r"|__(?P<under>.+?)__"
    r"|(?<![\w*])\*(?P<star>[^\s*](?:[^*]*?[^\s*])?)\*(?![\w*])"
    r"|(?<!\w)_(?P<single>[^\s_](?:[^_]*?[^\s_])?)_(?!\w)"
)


def _unwrap(match: "re.Match[str]") -> str:
    return next(group for group in match.groups() if group is not None)


def _clean(text: str) -> str:
    return _EMPHASIS.sub(_unwrap, text).replace("**", "").strip()


def split_sections(text: str) -> Dict[str, List[str]]:
    """Group response lines under the section heading they follow.

    Lines before the first recognised heading are dropped. A repeated
    heading appends to the existing section.
    """
    sections: Dict[str, List[str]] = {}
    current: Optional[str] = None
    for line in text.splitlines():
        heading = _HEADING.match(line)
        if heading:
            current = _SECTION_KEYS[heading.group("title").lower()]
            sections.setdefault(current, [])
            rest = heading.group("rest")
            if rest and rest.strip():
                sections[current].append(rest)
            continue
        if current is not None and line.strip():
            sections[current].append(line)
    return sections


def _list_items(lines: List[str]) -> Optional[List[str]]:
    items = []
    for line in lines:
        bullet = _BULLET.match(line)
        if bullet is None:
            continue
        item = _clean(bullet.group("text"))
        if item:
            items.append(item)
    return items or None


def _summary(lines: List[str]) -> Optional[str]:
    cleaned = [_clean(line) for line in lines]
    summary = "\n".join(line for line in cleaned if line)
    return summary or None


def _chart_explanations(
    lines: List[str],
    chart_titles: Optional[Sequence[str]],
) -> Optional[List[ParsedChartExplanation]]:
    known = {title.lower(): title for title in chart_titles or ()}
    explanations = []
    for item in _list_items(lines) or []:
        title, sep, body = item.partition(":")
        if not sep or not title.strip() or not body.strip():
            continue
        key = title.strip().lower()
        if known and key not in known:
            continue
        explanations.append(
            ParsedChartExplanation(title=known.get(key, title.strip()), explanation=body.strip())
        )
    return explanations or None


def parse_narrative(text: str, chart_titles: Optional[Sequence[str]] = None) -> NarrativeSections:
    """Parse a sectioned response into partial narrative sections.

    Args:
        text: Raw model output.
        chart_titles: Titles of the charts in the report. When given, only
            explanations naming one of them are kept.

    Returns:
        A :class:`NarrativeSections` with ``None`` for each missing section.
    """
    sections = split_sections(text or "")
    return NarrativeSections(
        executive_summary=_summary(sections.get("executive_summary", [])),
        key_insights=_list_items(sections.get("key_insights", [])),
        recommendations=_list_items(sections.get("recommendations", [])),
        chart_explanations=_chart_explanations(sections.get("chart_explanations", []), chart_titles),
    )
