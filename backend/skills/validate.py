"""
Validation skill for field mappings.

Errors block aggregation; kind mismatches are only warnings, and the
mapping stays usable.
"""

from __future__ import annotations

from typing import Dict, List, NamedTuple, Optional, Tuple

from core.models import ChartType, FieldKind, FieldMapping, FieldSchema, ValidationResult
from core.utils import parse_chart_type
from skills.recommend import suggest_mapping


class RoleRule(NamedTuple):
    role: str
    label: str                                   # name used in messages
    required: bool
    kinds: Optional[Tuple[FieldKind, ...]]       # recommended kinds; None = any


_NUMERIC = (FieldKind.numeric,)
_CATEGORICAL = (FieldKind.categorical,)

ROLE_RULES: Dict[ChartType, Tuple[RoleRule, ...]] = {
    ChartType.bar: (
        RoleRule("x", "X-axis", True, _CATEGORICAL),
        RoleRule("y", "Y-axis", True, _NUMERIC),
        RoleRule("color", "Color", False, None),
    ),
    ChartType.line: (
        RoleRule("x", "X-axis", True, (FieldKind.date, FieldKind.numeric)),
        RoleRule("y", "Y-axis", True, _NUMERIC),
        RoleRule("group", "Group", False, None),
    ),
    ChartType.scatter: (
        RoleRule("x", "X-axis", True, _NUMERIC),
        RoleRule("y", "Y-axis", True, _NUMERIC),
        RoleRule("size", "Size", False, _NUMERIC),
        RoleRule("color", "Color", False, None),
    ),
    ChartType.pie: (
        RoleRule("label", "Label", True, _CATEGORICAL),
        RoleRule("value", "Value", True, _NUMERIC),
    ),
    ChartType.heatmap: (
        RoleRule("x", "X-axis", True, _CATEGORICAL),
        RoleRule("y", "Y-axis", True, _CATEGORICAL),
        RoleRule("value", "Value", True, _NUMERIC),
    ),
}


def required_roles(chart_type) -> List[str]:
    ct = parse_chart_type(chart_type)
    return [r.role for r in ROLE_RULES[ct] if r.required]


def _check_role(
    rule: RoleRule,
    chart_type: ChartType,
    field: Optional[str],
    schema: Dict[str, FieldSchema],
    errors: List[str],
    warnings: List[str],
) -> None:
    if not field:
        if rule.required:
            errors.append(f"{rule.label} field is required for {chart_type.value} chart")
        return

    if field not in schema:
        errors.append(f"Field '{field}' does not exist in dataset")
        return

    kind = schema[field].kind
    if rule.kinds and kind not in rule.kinds:
        recommended = " or ".join(k.value for k in rule.kinds)
        warnings.append(
            f"Field '{field}' is {kind.value}, but {recommended} is recommended for {rule.label}"
        )


def validate_mapping(
    chart_type,
    mapping: FieldMapping,
    schema: Dict[str, FieldSchema],
) -> ValidationResult:
    """
    Check *mapping* against the role rules of *chart_type*.

    Never raises for bad mappings: problems come back as errors/warnings.
    Only an unknown chart type raises (UnknownChartTypeError).
    """
    ct = parse_chart_type(chart_type)
    rules = ROLE_RULES[ct]
    errors: List[str] = []
    warnings: List[str] = []

    for rule in rules:
        _check_role(rule, ct, mapping.get(rule.role), schema, errors, warnings)

    known = {r.role for r in rules}
    for role in mapping.roles():
        if role not in known:
            warnings.append(f"Role '{role}' is not used by {ct.value} chart")

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        suggestions=suggest_mapping(ct, schema),
    )
