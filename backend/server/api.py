"""
Dataset, mapping and chart routes — mounted as a sub-router on the main FastAPI app.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse

from core.config import PREVIEW_MAX_ROWS
from core.errors import DatasetNotFoundError, InvalidMappingError, UnknownChartTypeError
from core.models import ChartRequest, FieldMapping, FilterRequest
from core.storage import DatasetStore, get_session
from core.utils import cell_json_safe, parse_chart_type, records_json_safe
from server.orchestrator import build_chart
from skills.recommend import suggest_mapping
from skills.samples import SAMPLE_GENERATORS, load_sample
from skills.validate import validate_mapping

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["charts"])


def _require_session_id(request: Request) -> str:
    sid = request.headers.get("X-Session-Id")
    if not sid:
        raise HTTPException(status_code=400, detail="Missing X-Session-Id header.")
    return sid


def _store(request: Request) -> DatasetStore:
    return get_session(_require_session_id(request))


def _chart_type(value: str):
    try:
        return parse_chart_type(value)
    except UnknownChartTypeError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _require_current(store: DatasetStore) -> None:
    if not store.current:
        raise HTTPException(status_code=400, detail="No dataset loaded.")


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------

@router.post("/datasets/sample/{name}")
async def load_sample_dataset(request: Request, name: str):
    """Load a built-in sample; unknown names load the sales sample."""
    store = _store(request)
    if name not in SAMPLE_GENERATORS:
        logger.warning("Unknown sample '%s'; loading sales", name)
        name = "sales"
    records = load_sample(name)
    store.load(name, records)
    return {"ok": True, "dataset": name, "rows": len(records), "meta": store.meta[name]}


@router.get("/datasets")
async def list_datasets(request: Request):
    store = _store(request)
    return {
        "current": store.current,
        "datasets": [store.meta[name] for name in store.datasets],
    }


@router.put("/datasets/current/{name}")
async def set_current_dataset(request: Request, name: str):
    store = _store(request)
    try:
        store.set_current(name)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True, "current": name, "summary": store.summary().model_dump()}


@router.get("/datasets/{name}/preview")
async def preview_dataset(request: Request, name: str, offset: int = 0, limit: int = 50):
    """Raw rows of a dataset with cursor pagination."""
    store = _store(request)
    try:
        rows = store.raw(name)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    offset = max(offset, 0)
    limit = max(0, min(limit, PREVIEW_MAX_ROWS))
    end = min(offset + limit, len(rows))
    has_more = end < len(rows)
    return {
        "dataset": name,
        "columns": list(rows[0].keys()) if rows else [],
        "rows": records_json_safe(rows[offset:end]),
        "total_rows": len(rows),
        "offset": offset,
        "limit": limit,
        "has_more": has_more,
        "next_offset": end if has_more else None,
    }


@router.get("/schema")
async def get_schema(request: Request):
    store = _store(request)
    _require_current(store)
    schema = store.schema()
    return {
        "dataset": store.current,
        "fields": {name: fs.model_dump(mode="json") for name, fs in schema.items()},
        "suggestions": store.field_suggestions().model_dump(),
    }


@router.get("/summary")
async def get_summary(request: Request):
    return _store(request).summary().model_dump()


@router.get("/fields/{field}/values")
async def get_field_values(request: Request, field: str):
    """Distinct values and numeric range of a field, for filter controls."""
    store = _store(request)
    _require_current(store)
    values = [cell_json_safe(v) for v in store.unique_values(field)]
    return {
        "field": field,
        "values": values,
        "range": store.data_range(field).model_dump(),
    }


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

@router.post("/filters")
async def apply_filters(request: Request, body: FilterRequest):
    store = _store(request)
    store.apply_filters(body.filters)
    return {"filters": store.filters, "summary": store.summary().model_dump()}


@router.delete("/filters")
async def clear_filters(request: Request):
    store = _store(request)
    store.clear_filters()
    return {"filters": {}, "summary": store.summary().model_dump()}


# ---------------------------------------------------------------------------
# Mapping & charts
# ---------------------------------------------------------------------------

@router.get("/mapping/{chart_type}")
async def get_suggested_mapping(request: Request, chart_type: str):
    store = _store(request)
    ct = _chart_type(chart_type)
    _require_current(store)
    return suggest_mapping(ct, store.schema()).model_dump()


@router.post("/mapping/{chart_type}/validate")
async def validate_field_mapping(request: Request, chart_type: str, body: FieldMapping):
    store = _store(request)
    ct = _chart_type(chart_type)
    _require_current(store)
    return validate_mapping(ct, body, store.schema()).model_dump()


@router.post("/charts/{chart_type}")
async def create_chart(request: Request, chart_type: str, body: Optional[ChartRequest] = None):
    store = _store(request)
    ct = _chart_type(chart_type)
    _require_current(store)
    try:
        body = body or ChartRequest()
        view = build_chart(store, ct, body.mapping, regression=body.regression)
    except InvalidMappingError as e:
        raise HTTPException(status_code=422, detail=e.result.model_dump())
    return view.model_dump(mode="json")


@router.get("/export.csv", response_class=PlainTextResponse)
async def export_current_csv(request: Request):
    store = _store(request)
    _require_current(store)
    return PlainTextResponse(
        store.export_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{store.current}.csv"'},
    )
