"""Runtime settings read from the environment (or a local .env file)."""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("uvicorn.error")


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip() or default


def _env_int(key: str, default: int) -> int:
    raw = _env(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %d", key, raw, default)
        return default


MAX_PIE_SLICES = _env_int("MAX_PIE_SLICES", 15)
OTHERS_LABEL = _env("OTHERS_LABEL", "Others") or "Others"
SAMPLE_VALUES_MAX = _env_int("SAMPLE_VALUES_MAX", 5)
PREVIEW_MAX_ROWS = _env_int("PREVIEW_MAX_ROWS", 100)
LOG_LEVEL = (_env("LOG_LEVEL", "INFO") or "INFO").upper()


def cors_origins() -> List[str]:
    raw = _env("CORS_ORIGINS", "*") or "*"
    return [o.strip() for o in raw.split(",") if o.strip()]
