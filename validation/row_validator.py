"""
Row and file structure validation.

Used while editing (one row at a time, against the column definitions of
its file type) and right after parsing an uploaded file.
"""

from typing import Dict, List, Any, Optional, Sequence

from .base import (
    ValidationIssue,
    ValidationResult,
    MISSING_REQUIRED_FIELD,
    EMPTY_FILE,
    MISSING_COLUMN,
    EMPTY_ROW,
    INVALID_TIER,
    INVALID_NUMERIC_FIELD,
    is_blank,
    is_numeric,
)
from api.csv_io import get_column_definitions, ColumnDefinition


# ============================================================================
# FIELD VALIDATION
# ============================================================================

def validate_field(
    field_name: str,
    value: Any,
    file_type: str,
    row_number: Optional[int] = None,
    column_def: Optional[ColumnDefinition] = None
) -> ValidationResult:
    """
    Validate a single cell against its column definition.

    Args:
        field_name: Column name
        value: Cell value
        file_type: "strings" or "classifications"
        row_number: 1-based row number for reporting
        column_def: Optional column definition (looked up from file_type if missing)

    Returns:
        ValidationResult with any issues found
    """
    result = ValidationResult()

    if column_def is None:
        column_def = get_column_definitions(file_type).get(field_name)
        if column_def is None:
            return result  # Free-form column, nothing to check

    if is_blank(value):
        if column_def.required:
            result.add_issue(ValidationIssue(
                kind=MISSING_REQUIRED_FIELD,
                row=row_number,
                message=f"{column_def.display_name} is required",
                column=field_name,
            ))
        return result

    text = str(value).strip()

    if column_def.data_type == "enum" and column_def.allowed_values:
        if text not in column_def.allowed_values:
            result.add_issue(ValidationIssue(
                kind=INVALID_TIER,
                row=row_number,
                message=f"{column_def.display_name} should be {', '.join(column_def.allowed_values)}",
                column=field_name,
            ))

    elif column_def.data_type == "numeric":
        if not is_numeric(text):
            result.add_issue(ValidationIssue(
                kind=INVALID_NUMERIC_FIELD,
                row=row_number,
                message=f"{column_def.display_name} should be numeric",
                column=field_name,
            ))

    return result


# ============================================================================
# ROW VALIDATION
# ============================================================================

def validate_row(
    row_data: Dict[str, Any],
    file_type: str,
    row_number: Optional[int] = None
) -> ValidationResult:
    """Validate every known column of a single row."""
    result = ValidationResult()
    column_defs = get_column_definitions(file_type)

    for col_name, col_def in column_defs.items():
        field_result = validate_field(
            col_name,
            row_data.get(col_name),
            file_type,
            row_number=row_number,
            column_def=col_def,
        )
        for issue in field_result.errors + field_result.warnings:
            issue.data = dict(row_data)
            result.add_issue(issue)

    return result


# ============================================================================
# FILE STRUCTURE VALIDATION
# ============================================================================

def validate_csv_structure(
    rows: Sequence[Dict[str, Any]],
    headers: List[str]
) -> ValidationResult:
    """
    Validate a freshly parsed file.

    - An empty file is an error
    - Every row must carry every header
    - Rows with no data at all are reported as warnings
    """
    result = ValidationResult()

    if not rows:
        result.add_issue(ValidationIssue(
            kind=EMPTY_FILE,
            row=None,
            message="CSV file is empty or contains no valid data rows",
        ))
        return result

    for idx, row in enumerate(rows):
        row_number = idx + 1
        for header in headers:
            if header not in row:
                result.add_issue(ValidationIssue(
                    kind=MISSING_COLUMN,
                    row=row_number,
                    message=f'Row {row_number}: Missing column "{header}"',
                    column=header,
                ))

        if all(is_blank(value) for value in row.values()):
            result.add_issue(ValidationIssue(
                kind=EMPTY_ROW,
                row=row_number,
                message=f"Row {row_number}: Contains no data",
            ))

    return result
