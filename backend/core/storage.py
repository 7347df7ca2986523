"""
In-memory dataset store + per-session registry.

A DatasetStore owns the loaded datasets, the current dataset name and the
active filters. Aggregation code receives records from it and never holds
a reference back.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.errors import DatasetNotFoundError
from core.models import DataRange, DatasetSummary, FieldSchema, FieldSuggestions, Record
from skills.filters import filter_records
from skills.profile import classify
from skills.recommend import field_suggestions
from skills.summary import data_range, export_csv, summarize, unique_values

logger = logging.getLogger("uvicorn.error")


class DatasetStore:
    """
    Datasets of one session.

    Loads are sequenced: ``begin_load()`` hands out a token and
    ``commit_load()`` applies it only if no later-started load has committed,
    so a slow parse cannot replace a newer dataset. Loads that never commit
    (rejected uploads) do not block older ones.
    """

    def __init__(self) -> None:
        self.datasets: Dict[str, List[Record]] = {}
        self.meta: Dict[str, dict] = {}
        self.current: Optional[str] = None
        self.filters: Dict[str, Any] = {}
        self._schemas: Dict[str, Dict[str, FieldSchema]] = {}
        self._load_seq = 0
        self._committed_seq = 0

    # -- loading -----------------------------------------------------------

    def begin_load(self) -> int:
        self._load_seq += 1
        return self._load_seq

    def commit_load(
        self,
        token: int,
        name: str,
        records: List[Record],
        *,
        is_user_data: bool = False,
        filename: Optional[str] = None,
    ) -> bool:
        """Store *records* as *name* and make it current; False if *token* is stale."""
        if token <= self._committed_seq:
            logger.warning(
                "Discarding stale load of '%s' (token %d <= committed %d)", name, token, self._committed_seq,
            )
            return False

        self._committed_seq = token
        self.datasets[name] = list(records)
        self._schemas.pop(name, None)
        self.current = name
        self.meta[name] = {
            "name": name,
            "n_rows": len(records),
            "columns": list(records[0].keys()) if records else [],
            "is_user_data": is_user_data,
            "file_name": filename,
            "created_at": datetime.utcnow().isoformat() + "Z",
        }
        logger.info("Loaded dataset '%s' (%d rows)", name, len(records))
        return True

    def load(self, name: str, records: List[Record], **kwargs) -> bool:
        return self.commit_load(self.begin_load(), name, records, **kwargs)

    def unique_name(self, base: str) -> str:
        name, i = base, 1
        while name in self.datasets:
            i += 1
            name = f"{base}_{i}"
        return name

    # -- access ------------------------------------------------------------

    def _resolve(self, name: Optional[str]) -> Optional[str]:
        name = name or self.current
        if name is not None and name not in self.datasets:
            raise DatasetNotFoundError(name)
        return name

    def set_current(self, name: str) -> None:
        if name not in self.datasets:
            raise DatasetNotFoundError(name)
        self.current = name

    def raw(self, name: Optional[str] = None) -> List[Record]:
        resolved = self._resolve(name)
        return self.datasets[resolved] if resolved else []

    def current_view(self) -> List[Record]:
        """Current dataset with the active filters applied."""
        if not self.current:
            return []
        return filter_records(self.datasets[self.current], self.filters)

    def schema(self, name: Optional[str] = None) -> Dict[str, FieldSchema]:
        """Field schema of the raw dataset; cached until the next load of that name."""
        resolved = self._resolve(name)
        if resolved is None:
            return {}
        if resolved not in self._schemas:
            self._schemas[resolved] = classify(self.datasets[resolved])
        return self._schemas[resolved]

    # -- filters -----------------------------------------------------------

    def apply_filters(self, filters: Dict[str, Any]) -> None:
        self.filters = {**self.filters, **filters}

    def clear_filters(self) -> None:
        self.filters = {}

    # -- helpers for the UI ------------------------------------------------

    def unique_values(self, field: str, name: Optional[str] = None) -> List[Any]:
        return unique_values(self.raw(name), field)

    def data_range(self, field: str, name: Optional[str] = None) -> DataRange:
        return data_range(self.raw(name), field)

    def field_suggestions(self, name: Optional[str] = None) -> FieldSuggestions:
        return field_suggestions(self.schema(name))

    def summary(self) -> DatasetSummary:
        return summarize(self.raw(), self.current_view(), self.filters)

    def export_csv(self) -> str:
        return export_csv(self.current_view())


# ---------------------------------------------------------------------------
# Session registry
# ---------------------------------------------------------------------------

SESSIONS: Dict[str, DatasetStore] = {}

# Per-session map of upload content hash -> dataset name
SESS_HASHES: Dict[str, Dict[str, str]] = {}


def get_session(session_id: str) -> DatasetStore:
    if session_id not in SESSIONS:
        SESSIONS[session_id] = DatasetStore()
    return SESSIONS[session_id]


def get_session_hashes(session_id: str) -> Dict[str, str]:
    if session_id not in SESS_HASHES:
        SESS_HASHES[session_id] = {}
    return SESS_HASHES[session_id]
