"""
View builder skill.

Takes records + FieldMapping -> the pre-aggregated data each chart renders.
The frontend simply draws what it receives; no computation happens there.

Chart data contract:
- bar: AggregateRow per category, summed value, sorted descending.
- pie: same as bar, then collapsed to at most MAX_PIE_SLICES rows.
- line: SeriesPartition per group value (one unnamed partition without a group role).
- scatter: the records whose x and y are both numbers.
- heatmap: MatrixCell for every (x, y) of the observed cross product.

Ties are broken by first appearance in the input.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, Iterable, List, Optional, Tuple

import pandas as pd

from core.config import MAX_PIE_SLICES, OTHERS_LABEL
from core.models import (
    AggregateRow,
    ChartType,
    FieldMapping,
    MatrixCell,
    Record,
    SeriesPartition,
)
from core.utils import (
    cell_key,
    get_cell,
    is_number,
    numeric_value,
    parse_chart_type,
    share_pct,
    temporal_value,
    text_value,
)

logger = logging.getLogger("uvicorn.error")


# ---------------------------------------------------------------------------
# Grouping helpers
# ---------------------------------------------------------------------------

def _first_seen_codes(values: Iterable[Any]) -> List[int]:
    """Integer code per value; codes increase in order of first appearance."""
    index: Dict[Hashable, int] = {}
    return [index.setdefault(cell_key(v), len(index)) for v in values]


def _axis(values: List[Any], codes: List[int]) -> List[Tuple[int, Any]]:
    """(code, value) per distinct value, ordered by string form, first-seen on ties."""
    first: Dict[int, Any] = {}
    for v, c in zip(values, codes):
        first.setdefault(c, v)
    return sorted(first.items(), key=lambda item: text_value(item[1]))


# ---------------------------------------------------------------------------
# Categorical sum (bar, pie)
# ---------------------------------------------------------------------------

def aggregate_categorical(
    records: List[Record],
    category_field: str,
    value_field: Optional[str],
) -> List[AggregateRow]:
    """Sum *value_field* per distinct *category_field* value.

    Null or non-numeric values count as 0. Rows are sorted by value,
    descending; equal values keep first-seen category order.
    """
    if not records:
        return []

    frame = pd.DataFrame({
        "code": _first_seen_codes(get_cell(r, category_field) for r in records),
        "value": [numeric_value(get_cell(r, value_field)) or 0.0 for r in records],
        "pos": range(len(records)),
    })
    grouped = (
        frame.groupby("code", sort=True)
        .agg(value=("value", "sum"), n=("pos", "size"), first=("pos", "min"))
        .reset_index()
    )
    total = float(grouped["value"].sum())
    grouped = grouped.sort_values(["value", "first"], ascending=[False, True])
    positions = frame.groupby("code").indices

    rows: List[AggregateRow] = []
    for g in grouped.itertuples(index=False):
        value = float(g.value)
        rows.append(AggregateRow(
            category=get_cell(records[int(g.first)], category_field),
            value=value,
            count=int(g.n),
            percentage=share_pct(value, total),
            source_records=[records[int(i)] for i in positions[g.code]],
        ))
    return rows


def collapse_top_n(
    rows: List[AggregateRow],
    max_slices: int = MAX_PIE_SLICES,
    label: str = OTHERS_LABEL,
) -> List[AggregateRow]:
    """Keep the top ``max_slices - 1`` rows and fold the rest into one *label* row.

    Expects rows already sorted descending; returns them unchanged when
    there are at most *max_slices*.
    """
    if len(rows) <= max_slices:
        return list(rows)

    keep = rows[: max_slices - 1]
    folded = rows[max_slices - 1:]
    total = sum(r.value for r in rows)
    other_value = sum(r.value for r in folded)

    others = AggregateRow(
        category=label,
        value=other_value,
        count=sum(r.count for r in folded),
        percentage=share_pct(other_value, total),
        source_records=[rec for r in folded for rec in r.source_records],
    )
    logger.info("Collapsed %d categories into '%s'", len(folded), label)
    return keep + [others]


# ---------------------------------------------------------------------------
# Time series (line)
# ---------------------------------------------------------------------------

def group_time_series(
    records: List[Record],
    x_field: str,
    y_field: str,
    group_field: Optional[str] = None,
) -> List[SeriesPartition]:
    """Drop records missing x or y, sort by x as a date, split by *group_field*.

    x values that cannot be read as a date sort after all others.
    """
    kept = [
        r for r in records
        if get_cell(r, x_field) is not None and get_cell(r, y_field) is not None
    ]
    if not kept:
        return []

    frame = pd.DataFrame({
        "t": pd.Series([temporal_value(get_cell(r, x_field)) for r in kept], dtype="float64"),
        "pos": range(len(kept)),
    })
    if group_field:
        frame["code"] = _first_seen_codes(get_cell(r, group_field) for r in kept)
    frame = frame.sort_values("t", kind="mergesort", na_position="last")

    if not group_field:
        return [SeriesPartition(key=None, values=[kept[int(i)] for i in frame["pos"]])]

    partitions: List[SeriesPartition] = []
    for _, part in frame.groupby("code", sort=True):
        members = [kept[int(i)] for i in part["pos"]]
        partitions.append(SeriesPartition(key=get_cell(members[0], group_field), values=members))
    return partitions


# ---------------------------------------------------------------------------
# Raw pairs (scatter)
# ---------------------------------------------------------------------------

def filter_numeric_pairs(records: List[Record], x_field: str, y_field: str) -> List[Record]:
    """Records whose x and y are both finite numbers, in input order."""
    return [
        r for r in records
        if is_number(r.get(x_field)) and is_number(r.get(y_field))
    ]


# ---------------------------------------------------------------------------
# Matrix fill (heatmap)
# ---------------------------------------------------------------------------

def fill_matrix(
    records: List[Record],
    x_field: str,
    y_field: str,
    value_field: str,
) -> List[MatrixCell]:
    """Average *value_field* per (x, y) pair over the full observed cross product.

    Records with a null x or y, or a non-numeric value, are skipped.
    Cells are emitted row by row: for each y, every x.
    """
    usable = [
        r for r in records
        if get_cell(r, x_field) is not None
        and get_cell(r, y_field) is not None
        and is_number(r.get(value_field))
    ]
    if not usable:
        return []

    xs = [get_cell(r, x_field) for r in usable]
    ys = [get_cell(r, y_field) for r in usable]
    x_codes = _first_seen_codes(xs)
    y_codes = _first_seen_codes(ys)
    frame = pd.DataFrame({
        "xc": x_codes,
        "yc": y_codes,
        "value": [float(r[value_field]) for r in usable],
        "pos": range(len(usable)),
    })
    by_pair = frame.groupby(["xc", "yc"])
    grouped = by_pair.agg(total=("value", "sum"), n=("pos", "size"))
    sums = {
        (int(xc), int(yc)): (float(t), int(n))
        for (xc, yc), t, n in zip(grouped.index, grouped["total"], grouped["n"])
    }
    members = {(int(k[0]), int(k[1])): v for k, v in by_pair.indices.items()}

    x_axis = _axis(xs, x_codes)
    cells: List[MatrixCell] = []
    for yc, y in _axis(ys, y_codes):
        for xc, x in x_axis:
            total, n = sums.get((xc, yc), (0.0, 0))
            cells.append(MatrixCell(
                x=x,
                y=y,
                value=total / n if n else 0.0,
                count=n,
                source_records=[usable[int(i)] for i in members.get((xc, yc), [])],
            ))
    return cells


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def aggregate(chart_type, records: List[Record], mapping: FieldMapping) -> List[Any]:
    """Run the aggregation strategy for *chart_type*.

    The mapping is expected to be validated already; see server.orchestrator.
    """
    ct = parse_chart_type(chart_type)

    if ct == ChartType.bar:
        return aggregate_categorical(records, mapping.x, mapping.y)
    if ct == ChartType.pie:
        return collapse_top_n(aggregate_categorical(records, mapping.label, mapping.value))
    if ct == ChartType.line:
        return group_time_series(records, mapping.x, mapping.y, mapping.group)
    if ct == ChartType.scatter:
        return filter_numeric_pairs(records, mapping.x, mapping.y)
    return fill_matrix(records, mapping.x, mapping.y, mapping.value)
