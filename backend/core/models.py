"""
Core Pydantic models for the chart data pipeline.

All domain types live here so every module shares the same vocabulary.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# A single coerced value: number, datetime, string or None.
Cell = Any
Record = Dict[str, Any]


# ---------------------------------------------------------------------------
# Chart types & field schema
# ---------------------------------------------------------------------------

class ChartType(str, Enum):
    bar = "bar"
    line = "line"
    scatter = "scatter"
    pie = "pie"
    heatmap = "heatmap"


class FieldKind(str, Enum):
    numeric = "numeric"
    date = "date"
    categorical = "categorical"


class FieldStats(BaseModel):
    min: float
    max: float
    mean: float
    median: float
    count: int
    sum: float


class FieldSchema(BaseModel):
    name: str
    kind: FieldKind
    unique_count: int = 0
    sample_values: List[Any] = Field(default_factory=list)
    stats: Optional[FieldStats] = None           # numeric fields only


class FieldSuggestions(BaseModel):
    """Field names bucketed by kind, in dataset column order."""
    numeric: List[str] = Field(default_factory=list)
    categorical: List[str] = Field(default_factory=list)
    date: List[str] = Field(default_factory=list)
    all: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Field mapping & validation
# ---------------------------------------------------------------------------

class FieldMapping(BaseModel):
    """Chart role -> field name. Unset roles are unmapped."""

    model_config = ConfigDict(extra="forbid")

    x: Optional[str] = None
    y: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    label: Optional[str] = None
    value: Optional[str] = None
    group: Optional[str] = None

    def get(self, role: str) -> Optional[str]:
        return getattr(self, role, None) or None

    def roles(self) -> Dict[str, str]:
        """Mapped roles only."""
        return {k: v for k, v in self.model_dump().items() if v}


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    suggestions: Optional[FieldMapping] = None


# ---------------------------------------------------------------------------
# Aggregate outputs
# ---------------------------------------------------------------------------

class AggregateRow(BaseModel):
    category: Any = None
    value: float = 0.0
    count: int = 0
    percentage: float = 0.0
    source_records: List[Record] = Field(default_factory=list)


class SeriesPartition(BaseModel):
    key: Any = None                               # None for the single unnamed series
    values: List[Record] = Field(default_factory=list)


class MatrixCell(BaseModel):
    x: Any = None
    y: Any = None
    value: float = 0.0
    count: int = 0
    source_records: List[Record] = Field(default_factory=list)


class RegressionFit(BaseModel):
    slope: float
    intercept: float
    r_squared: Optional[float] = None             # None for a constant y fitted with residuals
    n: int = 0


class ValueStats(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    count: int = 0


class ChartView(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    chart_type: ChartType
    mapping: FieldMapping
    validation: ValidationResult
    data: List[Any] = Field(default_factory=list)
    regression: Optional[RegressionFit] = None
    stats: Optional[ValueStats] = None
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")


# ---------------------------------------------------------------------------
# Dataset store views
# ---------------------------------------------------------------------------

class DatasetSummary(BaseModel):
    total_records: int = 0
    selected_records: int = 0
    average_value: float = 0.0
    columns: List[str] = Field(default_factory=list)
    numeric_columns: List[str] = Field(default_factory=list)
    has_filters: bool = False


class DataRange(BaseModel):
    min: float
    max: float


class LoadOptions(BaseModel):
    remove_incomplete_rows: bool = False
    null_threshold: float = Field(default=0.5, gt=0.0, le=1.0)
    sort_by_date: bool = False


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class FilterRequest(BaseModel):
    filters: Dict[str, Any] = Field(default_factory=dict)


class ChartRequest(BaseModel):
    mapping: Optional[FieldMapping] = None
    regression: bool = True
