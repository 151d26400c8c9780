"""
Base validation module with shared constants, data classes, and helper functions.

This module provides the foundation for the validation system:
- Issue kinds and their severities
- Data classes for composite keys, issues, reports and suggestions
- Helper functions for reading and trimming cell values
"""

import math
from typing import Dict, List, Any, Optional, NamedTuple
from dataclasses import dataclass, field, asdict


# ============================================================================
# CONSTANTS
# ============================================================================

KEY_DELIMITER = "|"

# Fact row (strings) columns
TIER = "Tier"
TOPIC = "Topic"
SUBTOPIC = "Subtopic"
INDUSTRY = "Industry"
FUZZING_IDX = "Fuzzing-Idx"

# Reference row (classifications) uses a capital T in SubTopic
REFERENCE_SUBTOPIC = "SubTopic"
CLASSIFICATION = "Classification"

VALID_TIERS = ["1", "2", "3"]

# Error kinds block export
MISSING_REQUIRED_FIELD = "missing_required_field"
INVALID_COMBINATION = "invalid_combination"
EMPTY_FILE = "empty_file"
MISSING_COLUMN = "missing_column"

# Warning kinds are informational
INCOMPLETE_REFERENCE_ROW = "incomplete_reference_row"
INVALID_TIER = "invalid_tier"
INVALID_NUMERIC_FIELD = "invalid_numeric_field"
EMPTY_ROW = "empty_row"

ERROR_KINDS = [MISSING_REQUIRED_FIELD, INVALID_COMBINATION, EMPTY_FILE, MISSING_COLUMN]
WARNING_KINDS = [INCOMPLETE_REFERENCE_ROW, INVALID_TIER, INVALID_NUMERIC_FIELD, EMPTY_ROW]


# ============================================================================
# DATA CLASSES
# ============================================================================

class CompositeKey(NamedTuple):
    """Trimmed (Topic, Subtopic, Industry) triple joining strings to classifications."""
    topic: str
    subtopic: str
    industry: str

    @property
    def key(self) -> str:
        return KEY_DELIMITER.join(self)

    def to_dict(self) -> Dict[str, str]:
        return {TOPIC: self.topic, SUBTOPIC: self.subtopic, INDUSTRY: self.industry}


@dataclass
class ValidationIssue:
    """A single data-quality issue found on one row."""
    kind: str
    row: Optional[int]  # 1-based; None for file-level issues
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    combination: Optional[CompositeKey] = None
    column: Optional[str] = None

    @property
    def severity(self) -> str:
        return "error" if self.kind in ERROR_KINDS else "warning"

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "type": self.kind,
            "severity": self.severity,
            "row": self.row,
            "message": self.message,
            "data": dict(self.data),
        }
        if self.combination is not None:
            result["combination"] = self.combination.to_dict()
        if self.column is not None:
            result["column"] = self.column
        return result


@dataclass
class ValidationStats:
    fact_count: int = 0
    reference_count: int = 0
    invalid_count: int = 0
    index_size: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class ValidationResult:
    """Result of a row or file structure validation."""
    is_valid: bool = True
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def add_issue(self, issue: ValidationIssue):
        if issue.severity == "error":
            self.errors.append(issue)
            self.is_valid = False
        else:
            self.warnings.append(issue)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class ValidationReport(ValidationResult):
    """Result of cross-validating strings against classifications."""
    stats: ValidationStats = field(default_factory=ValidationStats)
    reference_index: Any = field(default=None, repr=False, compare=False)

    @property
    def invalid_combinations(self) -> List[ValidationIssue]:
        return [e for e in self.errors if e.kind == INVALID_COMBINATION]

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["stats"] = self.stats.to_dict()
        return base


@dataclass
class ScoredCandidate:
    combination: CompositeKey
    score: int

    def to_dict(self) -> Dict[str, Any]:
        return {"combination": self.combination.to_dict(), "score": self.score}


@dataclass
class Suggestion:
    """Ranked corrections for one row whose combination is not in classifications."""
    row: Optional[int]
    invalid: CompositeKey
    candidates: List[ScoredCandidate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "invalid": self.invalid.to_dict(),
            "suggestions": [c.to_dict() for c in self.candidates],
        }


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def get_trimmed(row: Dict[str, Any], key: str) -> str:
    """Get a cell as a trimmed string. Missing and None values become ''."""
    value = row.get(key)
    if value is None:
        return ""
    return str(value).strip()


def is_blank(value: Any) -> bool:
    """Check if value is None or an empty/whitespace string."""
    return value is None or str(value).strip() == ""


def is_numeric(value: str) -> bool:
    """Check if a string parses as a number. 'nan' does not count."""
    try:
        number = float(value)
    except (ValueError, TypeError):
        return False
    return not math.isnan(number)


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

    # Constants
    "KEY_DELIMITER",
    "TIER",
    "TOPIC",
    "SUBTOPIC",
    "INDUSTRY",
    "FUZZING_IDX",
    "REFERENCE_SUBTOPIC",
    "CLASSIFICATION",
    "VALID_TIERS",
    "MISSING_REQUIRED_FIELD",
    "INVALID_COMBINATION",
    "EMPTY_FILE",
    "MISSING_COLUMN",
    "INCOMPLETE_REFERENCE_ROW",
    "INVALID_TIER",
    "INVALID_NUMERIC_FIELD",
    "EMPTY_ROW",
    "ERROR_KINDS",
    "WARNING_KINDS",

    # Helper functions
    "get_trimmed",
    "is_blank",
    "is_numeric",
]
