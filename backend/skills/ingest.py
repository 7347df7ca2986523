"""
Ingestion skill: CSV/JSON text to typed records.

Every text cell goes through skills.coerce; post-load processing
(incomplete-row removal, date sorting) is applied on request.
"""

from __future__ import annotations

import io
import json
import logging
from datetime import datetime
from typing import Any, List, Optional

import pandas as pd

from core.errors import DatasetParseError, UnsupportedFormatError
from core.models import LoadOptions, Record
from core.utils import is_null, temporal_value
from skills.coerce import coerce, coerce_record, is_date_string

logger = logging.getLogger("uvicorn.error")

# Keys searched, in order, when a JSON document is an object rather than an array
_JSON_ARRAY_KEYS = ("data", "results", "items")


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------

def parse_csv_text(text: str) -> List[Record]:
    """Read CSV text as strings only, then coerce cell by cell."""
    if not text.strip():
        return []
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, ValueError) as e:
        raise DatasetParseError(f"Failed to read CSV: {e}") from e

    records: List[Record] = []
    for row in df.to_dict(orient="records"):
        records.append({str(k): coerce(v) for k, v in row.items()})
    return records


def extract_json_rows(doc: Any) -> List[Any]:
    if isinstance(doc, list):
        return doc
    if isinstance(doc, dict):
        for key in _JSON_ARRAY_KEYS:
            if doc.get(key):
                value = doc[key]
                return value if isinstance(value, list) else [value]
    return [doc]


def parse_json_text(text: str) -> List[Record]:
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise DatasetParseError(f"Failed to read JSON: {e}") from e

    rows = extract_json_rows(doc)
    records: List[Record] = []
    skipped = 0
    for row in rows:
        if not isinstance(row, dict):
            skipped += 1
            continue
        records.append(coerce_record(row))
    if skipped:
        logger.warning("Skipped %d non-object JSON rows", skipped)
    return records


def parse_upload(filename: str, content: bytes) -> List[Record]:
    """Dispatch on file extension."""
    name = (filename or "").lower()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DatasetParseError(f"File is not valid UTF-8: {e}") from e

    if name.endswith(".csv"):
        return parse_csv_text(text)
    if name.endswith(".json"):
        return parse_json_text(text)
    raise UnsupportedFormatError("Unsupported file format. Please upload CSV or JSON files.")


# ---------------------------------------------------------------------------
# Post-load processing
# ---------------------------------------------------------------------------

def find_date_field(records: List[Record]) -> Optional[str]:
    """First field whose value in the first record is a date."""
    if not records:
        return None
    for key, value in records[0].items():
        if isinstance(value, datetime) or is_date_string(value):
            return key
    return None


def _null_fraction(record: Record) -> float:
    if not record:
        return 1.0
    nulls = sum(1 for v in record.values() if is_null(v) or v == "")
    return nulls / len(record)


def process_records(records: List[Record], options: Optional[LoadOptions] = None) -> List[Record]:
    """Return a processed copy; the input list is left untouched."""
    options = options or LoadOptions()
    processed = list(records)

    if options.remove_incomplete_rows:
        before = len(processed)
        processed = [r for r in processed if _null_fraction(r) < options.null_threshold]
        if len(processed) < before:
            logger.info("Dropped %d incomplete rows", before - len(processed))

    if options.sort_by_date:
        date_field = find_date_field(processed)
        if date_field:
            frame = pd.DataFrame({
                "t": [temporal_value(r.get(date_field)) for r in processed],
                "pos": range(len(processed)),
            })
            order = frame.sort_values("t", kind="mergesort", na_position="last")["pos"]
            processed = [processed[int(i)] for i in order]

    return processed
