"""
Deterministic field-mapping suggestions.

suggest_mapping() picks default roles per chart type from the field schema.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from core.models import ChartType, FieldKind, FieldMapping, FieldSchema, FieldSuggestions
from core.utils import parse_chart_type


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def field_suggestions(schema: Dict[str, FieldSchema]) -> FieldSuggestions:
    """Bucket field names by kind, preserving column order."""
    out = FieldSuggestions(all=list(schema.keys()))
    for name, fs in schema.items():
        if fs.kind == FieldKind.numeric:
            out.numeric.append(name)
        elif fs.kind == FieldKind.date:
            out.date.append(name)
        else:
            out.categorical.append(name)
    return out


def _nth(names: List[str], i: int) -> Optional[str]:
    return names[i] if len(names) > i else None


def _first_other(names: List[str], exclude: Optional[str]) -> Optional[str]:
    for n in names:
        if n != exclude:
            return n
    return None


# ---------------------------------------------------------------------------
# Per-chart defaults
# ---------------------------------------------------------------------------

def _suggest_bar(s: FieldSuggestions) -> FieldMapping:
    return FieldMapping(
        x=_nth(s.categorical, 0) or _nth(s.all, 0),
        y=_nth(s.numeric, 0) or _nth(s.all, 1),
    )


def _suggest_line(s: FieldSuggestions) -> FieldMapping:
    return FieldMapping(
        x=_nth(s.date, 0) or _nth(s.numeric, 0) or _nth(s.all, 0),
        y=_nth(s.numeric, 0) or _nth(s.all, 1),
    )


def _suggest_scatter(s: FieldSuggestions) -> FieldMapping:
    x = _nth(s.numeric, 0) or _nth(s.all, 0)
    # y must differ from x even when it falls back to a non-numeric field
    y = _nth(s.numeric, 1) or _first_other(s.all, x)
    return FieldMapping(
        x=x,
        y=y,
        size=_nth(s.numeric, 2),
        color=_nth(s.categorical, 0),
    )


def _suggest_pie(s: FieldSuggestions) -> FieldMapping:
    return FieldMapping(
        label=_nth(s.categorical, 0) or _nth(s.all, 0),
        value=_nth(s.numeric, 0) or _nth(s.all, 1),
    )


def _suggest_heatmap(s: FieldSuggestions) -> FieldMapping:
    return FieldMapping(
        x=_nth(s.categorical, 0) or _nth(s.all, 0),
        y=_nth(s.categorical, 1) or _nth(s.all, 1),
        value=_nth(s.numeric, 0) or _nth(s.all, 2),
    )


_SUGGESTERS = {
    ChartType.bar: _suggest_bar,
    ChartType.line: _suggest_line,
    ChartType.scatter: _suggest_scatter,
    ChartType.pie: _suggest_pie,
    ChartType.heatmap: _suggest_heatmap,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def suggest_mapping(chart_type, schema: Dict[str, FieldSchema]) -> FieldMapping:
    """Default role assignment for *chart_type*; unknown types raise UnknownChartTypeError."""
    ct = parse_chart_type(chart_type)
    return _SUGGESTERS[ct](field_suggestions(schema))
