"""
Simple linear regression for scatter overlays.

Closed-form ordinary least squares on (x, y) pairs.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np

from core.models import Record, RegressionFit
from core.utils import is_number

logger = logging.getLogger("uvicorn.error")

# Relative tolerance for treating the residual sum of squares as exactly zero
_RESIDUAL_EPS = 1e-12


def _as_pair(p: Any) -> Tuple[Any, Any]:
    if isinstance(p, dict):
        return p.get("x"), p.get("y")
    return p[0], p[1]


def fit(pairs: Iterable[Any]) -> Optional[RegressionFit]:
    """
    Fit y = slope * x + intercept.

    *pairs* are ``{"x": .., "y": ..}`` dicts or ``(x, y)`` tuples; pairs
    with a non-numeric side are ignored. Returns None with fewer than 2
    usable pairs or when every x is identical (the slope is undefined).

    ``r_squared`` is 1.0 for a constant y fitted exactly, and None when
    y has zero variance but the fit leaves residuals.
    """
    xs: List[float] = []
    ys: List[float] = []
    for p in pairs:
        x, y = _as_pair(p)
        if is_number(x) and is_number(y):
            xs.append(float(x))
            ys.append(float(y))

    n = len(xs)
    if n < 2:
        return None

    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    sum_x, sum_y = float(x.sum()), float(y.sum())
    sum_xy, sum_xx = float((x * y).sum()), float((x * x).sum())

    denom = n * sum_xx - sum_x * sum_x
    if denom == 0 or not math.isfinite(denom):
        logger.warning("Regression skipped: x has zero variance (n=%d)", n)
        return None

    slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n

    y_mean = sum_y / n
    ss_tot = float(((y - y_mean) ** 2).sum())
    ss_res = float(((y - (slope * x + intercept)) ** 2).sum())

    if ss_tot == 0:
        scale = max(1.0, float((y * y).sum()))
        r_squared = 1.0 if ss_res <= _RESIDUAL_EPS * scale else None
    else:
        r_squared = 1.0 - ss_res / ss_tot

    return RegressionFit(slope=slope, intercept=intercept, r_squared=r_squared, n=n)


def fit_records(records: List[Record], x_field: str, y_field: str) -> Optional[RegressionFit]:
    return fit((r.get(x_field), r.get(y_field)) for r in records)
