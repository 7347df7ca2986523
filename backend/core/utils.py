"""
Shared cell helpers.

Pure functions: no I/O, no side effects.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Hashable, List, Optional

import pandas as pd

from core.errors import UnknownChartTypeError
from core.models import ChartType, Record

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Cell inspection
# ---------------------------------------------------------------------------

def is_null(value: Any) -> bool:
    """None or a float NaN."""
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def is_number(value: Any) -> bool:
    """Finite int/float, excluding bool."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def numeric_value(value: Any) -> Optional[float]:
    return float(value) if is_number(value) else None


def epoch_ms(value: datetime) -> int:
    """Milliseconds since the epoch; naive datetimes are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def cell_key(value: Any) -> Hashable:
    """Equality key for grouping: numbers by value, dates by epoch ms."""
    if is_null(value):
        return ("null",)
    if isinstance(value, datetime):
        return ("date", epoch_ms(value))
    if is_number(value):
        return ("num", float(value))
    if isinstance(value, str):
        return ("str", value)
    if isinstance(value, bool):
        return ("bool", value)
    return ("obj", repr(value))


def temporal_value(value: Any) -> Optional[float]:
    """Interpret a cell as a point in time (epoch ms); None if it is not one.

    Numbers are taken as epoch milliseconds, strings are parsed leniently.
    """
    if is_null(value):
        return None
    if isinstance(value, datetime):
        return float(epoch_ms(value))
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        ts = pd.to_datetime(value, errors="coerce")
        if pd.isna(ts):
            return None
        return float(ts.value // 1_000_000)
    return None


def text_value(value: Any) -> str:
    """String ordering key used for heatmap axes."""
    if is_null(value):
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if is_number(value) and float(value).is_integer():
        return str(int(value))
    return str(value)


def get_cell(record: Record, field: Optional[str]) -> Any:
    """Missing keys read as None."""
    if not field:
        return None
    value = record.get(field)
    return None if is_null(value) else value


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------

def share_pct(part: float, total: float) -> float:
    """Percentage of total; zero when total is not positive."""
    return (part / total) * 100.0 if total > 0 else 0.0


# ---------------------------------------------------------------------------
# JSON safety
# ---------------------------------------------------------------------------

def cell_json_safe(value: Any) -> Any:
    if is_null(value):
        return None
    if isinstance(value, float) and math.isinf(value):
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def records_json_safe(records: List[Record]) -> List[Dict[str, Any]]:
    """Dates -> ISO strings, NaN/inf -> None so JSON serialization works."""
    return [{k: cell_json_safe(v) for k, v in r.items()} for r in records]


# ---------------------------------------------------------------------------
# Chart type resolution
# ---------------------------------------------------------------------------

def parse_chart_type(value: Any) -> ChartType:
    """Resolve a chart type name; unknown names are a caller error."""
    if isinstance(value, ChartType):
        return value
    try:
        return ChartType(str(value).strip().lower())
    except ValueError:
        raise UnknownChartTypeError(value) from None
