"""
Record filtering.

Filter criteria per field:
- None: ignored
- list: membership
- {"min": .., "max": ..}: inclusive range; either bound may be omitted or None
- anything else: equality
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from core.models import Record
from core.utils import cell_key, get_cell, is_number
from skills.coerce import coerce


def _comparable(bound: Any, like: Any) -> Any:
    """Bring a JSON bound to the cell's type (date strings vs datetime cells)."""
    if isinstance(like, datetime) and isinstance(bound, str):
        return coerce(bound)
    if is_number(like) and isinstance(bound, str):
        return coerce(bound)
    return bound


def _in_range(value: Any, lo: Any, hi: Any) -> bool:
    """Inclusive range check; a None bound is open."""
    if value is None:
        return False
    lo, hi = _comparable(lo, value), _comparable(hi, value)
    try:
        if lo is not None and value < lo:
            return False
        if hi is not None and value > hi:
            return False
    except TypeError:
        return False
    return True


def _is_range(criterion: Any) -> bool:
    return isinstance(criterion, dict) and ("min" in criterion or "max" in criterion)


def matches(value: Any, criterion: Any) -> bool:
    if criterion is None:
        return True
    if isinstance(criterion, (list, tuple, set)):
        return cell_key(value) in {cell_key(_comparable(c, value)) for c in criterion}
    if _is_range(criterion):
        return _in_range(value, criterion.get("min"), criterion.get("max"))
    return cell_key(value) == cell_key(_comparable(criterion, value))


def filter_records(records: List[Record], filters: Dict[str, Any]) -> List[Record]:
    """Records satisfying every criterion; the input list is not modified."""
    if not filters:
        return list(records)
    active = {k: v for k, v in filters.items() if v is not None}
    return [
        r for r in records
        if all(matches(get_cell(r, field), crit) for field, crit in active.items())
    ]
