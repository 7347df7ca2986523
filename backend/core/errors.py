"""Exceptions raised for caller misuse.

Malformed *data* never raises; it degrades to empty or zero results.
These are reserved for programming errors and unusable inputs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.models import ValidationResult


class ChartPipelineError(RuntimeError):
    """Base class for chart pipeline failures."""


class UnknownChartTypeError(ChartPipelineError, ValueError):
    def __init__(self, chart_type: object) -> None:
        super().__init__(f"Unknown chart type: {chart_type!r}")
        self.chart_type = chart_type


class InvalidMappingError(ChartPipelineError, ValueError):
    """Raised when aggregation is requested with a mapping that failed validation."""

    def __init__(self, chart_type: str, result: "ValidationResult") -> None:
        detail = "; ".join(result.errors) or "invalid mapping"
        super().__init__(f"Invalid field mapping for {chart_type} chart: {detail}")
        self.chart_type = chart_type
        self.result = result


class DatasetNotFoundError(ChartPipelineError, LookupError):
    def __init__(self, name: object) -> None:
        super().__init__(f"Dataset '{name}' not found")
        self.name = name


class UnsupportedFormatError(ChartPipelineError, ValueError):
    """Raised for uploads that are neither CSV nor JSON."""


class DatasetParseError(ChartPipelineError, ValueError):
    """Raised when CSV/JSON text cannot be read at all."""
