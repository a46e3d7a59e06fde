"""
Google Forms compatibility report for an arbitrary schema.

Unlike the cleaner this never changes anything: it inspects a schema (cleaned
or not) and lists what would stop it from becoming a Google Form.
"""

import logging
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from gforms.field_types import (
    FieldType,
    get_supported_field_types,
    is_choice_type,
    is_supported,
)
from gforms.schema import (
    MAX_DESCRIPTION_LENGTH,
    MAX_FIELD_DESCRIPTION_LENGTH,
    MAX_FIELDS,
    MAX_LABEL_LENGTH,
    MAX_OPTION_LENGTH,
    MAX_OPTIONS,
    MAX_TITLE_LENGTH,
    FormSchema,
)

logger = logging.getLogger(__name__)


class ValidationSummary(BaseModel):
    total_fields: int = 0
    supported_fields: int = 0
    unsupported_fields: int = 0
    fields_with_issues: int = 0


class ValidationReport(BaseModel):
    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    summary: ValidationSummary = Field(default_factory=ValidationSummary)


def _validate_choice_field(
    field: Dict[str, Any], prefix: str, errors: List[str], warnings: List[str]
) -> None:
    options = field.get("options")
    if not isinstance(options, list):
        errors.append(f"{prefix}: Choice field must have options array")
        return
    if not options:
        errors.append(f"{prefix}: Choice field must have at least one option")
    if len(options) > MAX_OPTIONS:
        errors.append(
            f"{prefix}: Choice field exceeds maximum of {MAX_OPTIONS} options"
        )

    for position, option in enumerate(options, 1):
        if not option or not isinstance(option, str):
            errors.append(f"{prefix}: Option {position} must be a valid string")
        elif not option.strip():
            errors.append(f"{prefix}: Option {position} cannot be empty")
        elif len(option) > MAX_OPTION_LENGTH:
            warnings.append(
                f"{prefix}: Option {position} exceeds recommended length "
                f"of {MAX_OPTION_LENGTH} characters"
            )

    hashable = [o for o in options if isinstance(o, str)]
    if len(set(hashable)) != len(hashable):
        warnings.append(f"{prefix}: Contains duplicate options")


def _validate_type_specific(
    field: Dict[str, Any], prefix: str, errors: List[str], warnings: List[str]
) -> None:
    field_type = field.get("type")
    validation = field.get("validation")
    if not isinstance(validation, dict):
        validation = {}

    if is_choice_type(field_type):
        _validate_choice_field(field, prefix, errors, warnings)
    elif field_type == FieldType.EMAIL.value and validation.get("pattern"):
        warnings.append(
            f"{prefix}: Custom email validation patterns may not work in Google Forms"
        )
    elif field_type == FieldType.NUMBER.value:
        for bound in ("min", "max"):
            value = validation.get(bound)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                warnings.append(
                    f"{prefix}: Number validation {bound} should be a number"
                )
    elif field_type == FieldType.DATE.value and (
        validation.get("minDate") or validation.get("maxDate")
    ):
        warnings.append(
            f"{prefix}: Date range validation may have limited support in Google Forms"
        )
    elif field_type == FieldType.FILE.value:
        warnings.append(
            f"{prefix}: File upload requires Google Drive permissions "
            "and may have limitations"
        )


def _validate_field(field: Any, index: int, report: ValidationReport) -> None:
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(field, dict):
        report.errors.append(f"Field {index + 1}: Field must be an object")
        report.summary.unsupported_fields += 1
        report.summary.fields_with_issues += 1
        return

    prefix = f"Field {index + 1} ({field.get('label') or field.get('id') or 'unnamed'})"
    field_type = field.get("type")

    if not field.get("id") or not isinstance(field.get("id"), str):
        errors.append(f"{prefix}: Field must have a valid id")
    if not field.get("label") or not isinstance(field.get("label"), str):
        errors.append(f"{prefix}: Field must have a valid label")
    if not field_type or not isinstance(field_type, str):
        errors.append(f"{prefix}: Field must have a valid type")

    if field_type and is_supported(field_type):
        report.summary.supported_fields += 1
    else:
        report.summary.unsupported_fields += 1
        if field_type:
            errors.append(
                f"{prefix}: Field type '{field_type}' is not supported by Google Forms"
            )

    label = field.get("label")
    if isinstance(label, str) and len(label) > MAX_LABEL_LENGTH:
        errors.append(
            f"{prefix}: Label exceeds maximum length of {MAX_LABEL_LENGTH} characters"
        )
    description = field.get("description")
    if isinstance(description, str) and len(description) > MAX_FIELD_DESCRIPTION_LENGTH:
        warnings.append(
            f"{prefix}: Description exceeds recommended length "
            f"of {MAX_FIELD_DESCRIPTION_LENGTH} characters"
        )

    _validate_type_specific(field, prefix, errors, warnings)

    if errors or warnings:
        report.summary.fields_with_issues += 1
    report.errors.extend(errors)
    report.warnings.extend(warnings)


def validate_schema(schema: Any) -> ValidationReport:
    """
    Check a schema for Google Forms compatibility without modifying it.

    Args:
        schema: A FormSchema or any JSON-like value.

    Returns:
        ValidationReport: errors block creation, warnings are advisory.
    """
    report = ValidationReport()
    if isinstance(schema, FormSchema):
        schema = schema.model_dump(mode="json")

    if not isinstance(schema, dict):
        report.errors.append("Schema must be a valid object")
        report.valid = False
        return report

    title = schema.get("title")
    if not title or not isinstance(title, str):
        report.errors.append("Schema must have a valid title")
    else:
        if len(title) > MAX_TITLE_LENGTH:
            report.errors.append(
                f"Form title exceeds maximum length of {MAX_TITLE_LENGTH} characters"
            )
        if not title.strip():
            report.errors.append("Form title cannot be empty")

    description = schema.get("description")
    if isinstance(description, str) and len(description) > MAX_DESCRIPTION_LENGTH:
        report.warnings.append(
            "Form description exceeds recommended length "
            f"of {MAX_DESCRIPTION_LENGTH} characters"
        )

    fields = schema.get("fields")
    if not isinstance(fields, list):
        report.errors.append("Schema must have a fields array")
    else:
        report.summary.total_fields = len(fields)
        if len(fields) > MAX_FIELDS:
            report.errors.append(f"Form exceeds maximum of {MAX_FIELDS} fields")
        if not fields:
            report.warnings.append("Form has no fields")
        for index, field in enumerate(fields):
            _validate_field(field, index, report)

        ids = [
            f["id"]
            for f in fields
            if isinstance(f, dict) and isinstance(f.get("id"), str) and f["id"]
        ]
        if len(set(ids)) != len(ids):
            report.errors.append("Form contains duplicate field IDs")
        if report.summary.total_fields > 0 and report.summary.supported_fields == 0:
            report.errors.append("Form contains no fields supported by Google Forms")

    report.valid = not report.errors
    logger.debug(
        f"[validate_schema] valid={report.valid} errors={len(report.errors)} "
        f"warnings={len(report.warnings)}"
    )
    return report


def format_report(report: ValidationReport) -> str:
    """Render a report as plain text for tool output."""
    summary = report.summary
    lines = [
        "=== Google Forms Validation Report ===",
        "",
        f"Status: {'VALID' if report.valid else 'INVALID'}",
        f"Total Fields: {summary.total_fields}",
        f"Supported Fields: {summary.supported_fields}",
        f"Unsupported Fields: {summary.unsupported_fields}",
        f"Fields with Issues: {summary.fields_with_issues}",
        "",
    ]
    if report.errors:
        lines.append("ERRORS:")
        lines.extend(f"  {i}. {error}" for i, error in enumerate(report.errors, 1))
        lines.append("")
    if report.warnings:
        lines.append("WARNINGS:")
        lines.extend(
            f"  {i}. {warning}" for i, warning in enumerate(report.warnings, 1)
        )
        lines.append("")
    if report.valid:
        lines.append("Form is compatible with Google Forms.")
    else:
        lines.append(
            "Form has compatibility issues that must be resolved. Supported types: "
            + ", ".join(get_supported_field_types())
        )
    return "\n".join(lines)
