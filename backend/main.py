from fastapi import FastAPI, UploadFile, File, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from core.config import LOG_LEVEL, cors_origins
from core.errors import DatasetParseError, UnsupportedFormatError
from core.models import LoadOptions
from core.storage import get_session, get_session_hashes
from server.api import router as charts_router
from skills.ingest import parse_upload, process_records
import logging
import hashlib
import json

logger = logging.getLogger("uvicorn.error")
logger.setLevel(LOG_LEVEL)
app = FastAPI(title="Chart Builder", description="Turn tabular data into render-ready charts")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount the dataset/chart API router
app.include_router(charts_router)


def require_session_id(request: Request) -> str:
    sid = request.headers.get("X-Session-Id")
    if not sid:
        raise HTTPException(status_code=400, detail="Missing X-Session-Id header.")
    return sid


def _sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _log_response(ctx: str, payload) -> None:
    """Pretty-print JSON-able payloads; fall back to str()."""
    try:
        logger.info("%s response: %s", ctx, json.dumps(payload, indent=2, default=str))
    except (TypeError, ValueError):
        logger.info("%s response (non-serializable): %s", ctx, str(payload))


@app.get("/health")
async def health():
    return {"ok": True}


@app.post("/upload")
async def upload(
    request: Request,
    file: UploadFile = File(...),
    remove_incomplete_rows: bool = False,
    null_threshold: float = 0.5,
    sort_by_date: bool = False,
):
    sid = require_session_id(request)
    store = get_session(sid)
    # a newer load that commits while this one is parsing wins
    token = store.begin_load()
    content = await file.read()
    filename = file.filename or "table.csv"

    try:
        options = LoadOptions(
            remove_incomplete_rows=remove_incomplete_rows,
            null_threshold=null_threshold,
            sort_by_date=sort_by_date,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid load options: {e.errors()[0]['msg']}")

    # duplicate detection (by content hash)
    file_hash = _sha256_bytes(content)
    sess_hashes = get_session_hashes(sid)
    if file_hash in sess_hashes:
        existing_name = sess_hashes[file_hash]
        dup_resp = {
            "ok": False,
            "duplicate": True,
            "dataset": existing_name,
            "detail": "Duplicate upload: this file was already uploaded for this session.",
        }
        _log_response("UPLOAD (duplicate)", dup_resp)
        return JSONResponse(status_code=409, content=dup_resp)

    try:
        records = parse_upload(filename, content)
    except (UnsupportedFormatError, DatasetParseError) as e:
        logger.exception("Failed to read %s", filename)
        raise HTTPException(status_code=400, detail=str(e))

    records = process_records(records, options)

    base = filename.rsplit(".", 1)[0] if "." in filename else filename
    name = store.unique_name(base or "table")
    if not store.commit_load(token, name, records, is_user_data=True, filename=filename):
        resp = {"ok": False, "stale": True, "dataset": name, "current": store.current}
        _log_response("UPLOAD (stale)", resp)
        return JSONResponse(status_code=409, content=resp)

    sess_hashes[file_hash] = name
    resp = {
        "ok": True,
        "dataset": name,
        "rows": len(records),
        "columns": store.meta[name]["columns"],
        "meta": store.meta[name],
    }
    _log_response("UPLOAD", resp)
    return resp
