"""
Validation for strings and classifications CSV data.

Two kinds of validation:
- Cross-dataset integrity: every strings row must reference a
  (Topic, SubTopic, Industry) combination defined in classifications,
  with ranked correction suggestions for rows that do not
- Row / file structure: required fields on a single edited row, and
  structural checks on a freshly parsed file

Usage:
    from validation import validate_data_integrity, suggest_corrections
    report = validate_data_integrity(strings_rows, classification_rows)
    suggestions = suggest_corrections(report.invalid_combinations, report.reference_index)

Package Structure:
    - base.py: Shared constants, data classes, and helper functions
    - integrity_validator.py: Reference index and cross-dataset checks
    - suggestion_engine.py: Scoring and ranking of correction candidates
    - row_validator.py: Field, row and file structure validation
"""

# Base module - constants, data classes, helpers
from .base import (
    # Data classes
    CompositeKey,
    ValidationIssue,
    ValidationStats,
    ValidationResult,
    ValidationReport,
    ScoredCandidate,
    Suggestion,

    # Issue kinds
    MISSING_REQUIRED_FIELD,
    INVALID_COMBINATION,
    EMPTY_FILE,
    MISSING_COLUMN,
    INCOMPLETE_REFERENCE_ROW,
    INVALID_TIER,
    INVALID_NUMERIC_FIELD,
    EMPTY_ROW,

    # Helper functions
    get_trimmed,
    is_blank,
    is_numeric,
)

# Cross-dataset integrity
from .integrity_validator import (
    ReferenceKeyIndex,
    build_reference_index,
    fact_key,
    reference_key,
    validate_data_integrity,
)

# Suggestions
from .suggestion_engine import (
    score_field,
    score_combination,
    rank_candidates,
    suggest_corrections,
)

# Row / file structure
from .row_validator import (
    validate_field,
    validate_row,
    validate_csv_structure,
)


# ============================================================================
# PUBLIC API
# ============================================================================

__all__ = [
    # Data classes
    "CompositeKey",
    "ValidationIssue",
    "ValidationStats",
    "ValidationResult",
    "ValidationReport",
    "ScoredCandidate",
    "Suggestion",

    # Issue kinds
    "MISSING_REQUIRED_FIELD",
    "INVALID_COMBINATION",
    "EMPTY_FILE",
    "MISSING_COLUMN",
    "INCOMPLETE_REFERENCE_ROW",
    "INVALID_TIER",
    "INVALID_NUMERIC_FIELD",
    "EMPTY_ROW",

    # Helper functions
    "get_trimmed",
    "is_blank",
    "is_numeric",

    # Integrity API
    "ReferenceKeyIndex",
    "build_reference_index",
    "fact_key",
    "reference_key",
    "validate_data_integrity",

    # Suggestion API
    "score_field",
    "score_combination",
    "rank_candidates",
    "suggest_corrections",

    # Row API
    "validate_field",
    "validate_row",
    "validate_csv_structure",
]
