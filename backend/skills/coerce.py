"""
Type coercion skill.

Turns raw text cells into typed values: number, datetime, string or None.
Numbers win over dates, so a bare "2023" is the number 2023.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

import pandas as pd

from core.models import Record

_INT_RE = re.compile(r"^[+-]?\d+$", re.ASCII)
_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$", re.ASCII)

# (pattern, strptime format) pairs; a match must also be a real calendar date
_DATE_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII), "%Y-%m-%d"),
    (re.compile(r"^\d{2}/\d{2}/\d{4}$", re.ASCII), "%m/%d/%Y"),
    (re.compile(r"^\d{2}-\d{2}-\d{4}$", re.ASCII), "%m-%d-%Y"),
    (re.compile(r"^\d{4}/\d{2}/\d{2}$", re.ASCII), "%Y/%m/%d"),
)


def parse_number(text: str) -> Optional[float]:
    """Return int/float when *text* is entirely a finite decimal number."""
    if _INT_RE.match(text):
        return int(text)
    if _FLOAT_RE.match(text):
        value = float(text)
        if value in (float("inf"), float("-inf")):
            return None
        return value
    return None


def parse_date(text: str) -> Optional[datetime]:
    """Return a datetime when *text* matches a known date pattern."""
    for pattern, fmt in _DATE_PATTERNS:
        if not pattern.match(text):
            continue
        ts = pd.to_datetime(text, format=fmt, errors="coerce")
        if pd.isna(ts):
            return None
        return ts.to_pydatetime()
    return None


def is_date_string(value: Any) -> bool:
    return isinstance(value, str) and parse_date(value.strip()) is not None


def coerce(raw: Optional[str]) -> Any:
    """Coerce one raw text cell."""
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None

    number = parse_number(text)
    if number is not None:
        return number

    date = parse_date(text)
    if date is not None:
        return date

    return text


def coerce_value(value: Any) -> Any:
    """Coerce a cell that may already be typed (e.g. from JSON).

    Strings go through :func:`coerce`; everything else passes through.
    """
    if isinstance(value, str):
        return coerce(value)
    return value


def coerce_record(row: Mapping[str, Any]) -> Record:
    return {str(k): coerce_value(v) for k, v in row.items()}


def coerce_records(rows) -> list[Dict[str, Any]]:
    return [coerce_record(r) for r in rows]
