"""
Summary statistics skill: dataset summary, value stats and CSV export.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Hashable, List, Optional

import numpy as np
import pandas as pd

from core.models import DataRange, DatasetSummary, Record, ValueStats
from core.utils import cell_key, get_cell, is_null, is_number, text_value


def numeric_columns(records: List[Record]) -> List[str]:
    """Fields whose value in the first record is a number."""
    if not records:
        return []
    return [k for k, v in records[0].items() if is_number(v)]


def summarize(raw: List[Record], view: List[Record], filters: Optional[Dict[str, Any]] = None) -> DatasetSummary:
    """Headline numbers for the dashboard: record counts and the average of the first numeric column."""
    if not view:
        return DatasetSummary(total_records=len(raw), has_filters=bool(filters))

    num_cols = numeric_columns(view)
    average = 0.0
    if num_cols:
        values = [float(r[num_cols[0]]) for r in view if is_number(r.get(num_cols[0]))]
        if values:
            average = round(float(np.mean(values)), 2)

    return DatasetSummary(
        total_records=len(raw),
        selected_records=len(view),
        average_value=average,
        columns=list(view[0].keys()),
        numeric_columns=num_cols,
        has_filters=bool(filters),
    )


def value_stats(records: List[Record], field: Optional[str]) -> ValueStats:
    """min/max/count of the numeric values of *field*."""
    values = [float(r[field]) for r in records if field and is_number(r.get(field))]
    if not values:
        return ValueStats()
    return ValueStats(min=min(values), max=max(values), count=len(values))


def unique_values(records: List[Record], field: str) -> List[Any]:
    """Distinct non-null values, sorted by string form."""
    seen: Dict[Hashable, Any] = {}
    for r in records:
        v = get_cell(r, field)
        if v is not None:
            seen.setdefault(cell_key(v), v)
    return sorted(seen.values(), key=text_value)


def data_range(records: List[Record], field: str) -> DataRange:
    """Numeric min/max of *field*; 0..100 when it has no numbers."""
    values = [float(r[field]) for r in records if is_number(r.get(field))]
    if not values:
        return DataRange(min=0, max=100)
    return DataRange(min=min(values), max=max(values))


def _export_cell(value: Any) -> Any:
    if is_null(value):
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    return value


def export_csv(records: List[Record]) -> str:
    """CSV text with the first record's columns; dates as YYYY-MM-DD."""
    if not records:
        return ""
    headers = list(records[0].keys())
    rows = [{h: _export_cell(r.get(h)) for h in headers} for r in records]
    return pd.DataFrame(rows, columns=headers).to_csv(index=False)
