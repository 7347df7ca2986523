"""
Chart orchestrator — runs the deterministic pipeline for one chart:
schema -> mapping (suggested or given) -> validation -> aggregation -> regression.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import InvalidMappingError
from core.models import ChartType, ChartView, FieldMapping
from core.storage import DatasetStore
from core.utils import parse_chart_type
from skills.build_view import aggregate
from skills.recommend import suggest_mapping
from skills.regression import fit_records
from skills.summary import value_stats
from skills.validate import validate_mapping

logger = logging.getLogger("uvicorn.error")

# Role whose values feed the chart statistics panel
_VALUE_ROLE = {
    ChartType.bar: "y",
    ChartType.line: "y",
    ChartType.scatter: "y",
    ChartType.pie: "value",
    ChartType.heatmap: "value",
}


def build_chart(
    store: DatasetStore,
    chart_type,
    mapping: Optional[FieldMapping] = None,
    *,
    regression: bool = True,
) -> ChartView:
    """
    Build the render-ready view of the current (filtered) dataset.

    Without a mapping the suggested one is used. Raises InvalidMappingError
    when validation reports errors; warnings are returned on the view.
    """
    ct = parse_chart_type(chart_type)
    schema = store.schema()
    if mapping is None:
        mapping = suggest_mapping(ct, schema)

    result = validate_mapping(ct, mapping, schema)
    if not result.is_valid:
        raise InvalidMappingError(ct.value, result)
    for w in result.warnings:
        logger.info("%s mapping warning: %s", ct.value, w)

    records = store.current_view()
    data = aggregate(ct, records, mapping)

    fit = None
    if regression and ct == ChartType.scatter:
        fit = fit_records(data, mapping.x, mapping.y)

    view = ChartView(
        chart_type=ct,
        mapping=mapping,
        validation=result,
        data=data,
        regression=fit,
        stats=value_stats(records, mapping.get(_VALUE_ROLE[ct])),
    )
    logger.info(
        "Built %s chart from %d records -> %d items", ct.value, len(records), len(data),
    )
    return view
