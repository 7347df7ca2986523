"""
Field classification skill.

Builds a FieldSchema per field from a list of typed records.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np

from core.config import SAMPLE_VALUES_MAX
from core.models import FieldKind, FieldSchema, FieldStats, Record
from core.utils import cell_key, get_cell, is_number
from skills.coerce import is_date_string


# ---------------------------------------------------------------------------
# Kind detection
# ---------------------------------------------------------------------------

def detect_field_kind(values: List[Any]) -> FieldKind:
    """Classify from the first non-null value only.

    Fast, but a column that starts with a number and continues with text
    is still numeric. Known limitation.
    """
    if not values:
        return FieldKind.categorical
    first = values[0]
    if is_number(first):
        return FieldKind.numeric
    if isinstance(first, datetime) or is_date_string(first):
        return FieldKind.date
    return FieldKind.categorical


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

def calculate_stats(values: List[Any]) -> Optional[FieldStats]:
    """min/max/mean/median/count/sum over the numeric values; None if there are none."""
    nums = np.asarray([float(v) for v in values if is_number(v)], dtype=float)
    if nums.size == 0:
        return None
    return FieldStats(
        min=float(nums.min()),
        max=float(nums.max()),
        mean=float(nums.mean()),
        median=float(np.median(nums)),
        count=int(nums.size),
        sum=float(nums.sum()),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def field_names(records: List[Record]) -> List[str]:
    """Fields of the first record; the dataset is assumed homogeneous."""
    return list(records[0].keys()) if records else []


def classify_field(name: str, records: List[Record]) -> FieldSchema:
    values = [v for v in (get_cell(r, name) for r in records) if v is not None]
    kind = detect_field_kind(values)
    unique = {cell_key(v) for v in values}

    return FieldSchema(
        name=name,
        kind=kind,
        unique_count=len(unique),
        sample_values=values[:SAMPLE_VALUES_MAX],
        stats=calculate_stats(values) if kind == FieldKind.numeric else None,
    )


def classify(records: List[Record]) -> Dict[str, FieldSchema]:
    """
    Build the schema of a dataset.

    Returns an empty mapping for an empty dataset. Records missing a key
    contribute None for that field.
    """
    return {name: classify_field(name, records) for name in field_names(records)}
