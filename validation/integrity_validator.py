"""
Cross-dataset integrity validation.

Checks every strings row against the (Topic, SubTopic, Industry) combinations
defined in the classifications data:
- Missing Topic/Subtopic/Industry on a strings row is an error
- A combination absent from classifications is an error
- Incomplete classification rows are skipped with a warning
- Tier and Fuzzing-Idx are checked on otherwise valid rows (warnings only)
"""

from typing import Dict, List, Any, Iterator, Optional, Sequence, Tuple
import structlog

from .base import (
    CompositeKey,
    ValidationIssue,
    ValidationReport,
    ValidationStats,
    TIER,
    TOPIC,
    SUBTOPIC,
    INDUSTRY,
    FUZZING_IDX,
    REFERENCE_SUBTOPIC,
    VALID_TIERS,
    MISSING_REQUIRED_FIELD,
    INVALID_COMBINATION,
    INCOMPLETE_REFERENCE_ROW,
    INVALID_TIER,
    INVALID_NUMERIC_FIELD,
    get_trimmed,
    is_numeric,
)

logger = structlog.get_logger(__name__)


# ============================================================================
# REFERENCE KEY INDEX
# ============================================================================

class ReferenceKeyIndex:
    """Insertion-ordered set of valid combinations from classifications.

    Combinations are stored under their delimited key string.
    """

    def __init__(self, keys: Optional[Sequence[CompositeKey]] = None):
        self._keys: Dict[str, CompositeKey] = {}
        for key in keys or []:
            self.add(key)

    def add(self, key: CompositeKey):
        self._keys.setdefault(key.key, key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, CompositeKey):
            return False
        return key.key in self._keys

    def __iter__(self) -> Iterator[CompositeKey]:
        return iter(self._keys.values())

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReferenceKeyIndex):
            return NotImplemented
        return list(self._keys) == list(other._keys)

    def __repr__(self) -> str:
        return f"ReferenceKeyIndex(size={len(self)})"


def fact_key(row: Dict[str, Any]) -> Optional[CompositeKey]:
    """Trimmed combination of a strings row, or None if any part is empty."""
    key = CompositeKey(
        get_trimmed(row, TOPIC),
        get_trimmed(row, SUBTOPIC),
        get_trimmed(row, INDUSTRY),
    )
    return key if all(key) else None


def reference_key(row: Dict[str, Any]) -> Optional[CompositeKey]:
    """Trimmed combination of a classifications row, or None if any part is empty."""
    key = CompositeKey(
        get_trimmed(row, TOPIC),
        get_trimmed(row, REFERENCE_SUBTOPIC),
        get_trimmed(row, INDUSTRY),
    )
    return key if all(key) else None


def build_reference_index(
    reference_rows: Sequence[Dict[str, Any]]
) -> Tuple[ReferenceKeyIndex, List[ValidationIssue]]:
    """
    Build the set of valid combinations from classifications rows.

    Rows missing Topic, SubTopic or Industry are left out of the index and
    reported as incomplete_reference_row warnings.

    Returns:
        Tuple of (index, warnings)
    """
    index = ReferenceKeyIndex()
    warnings = []

    for idx, row in enumerate(reference_rows):
        key = reference_key(row)
        if key is None:
            warnings.append(ValidationIssue(
                kind=INCOMPLETE_REFERENCE_ROW,
                row=idx + 1,
                message=f"Classification row {idx + 1} has missing values",
                data=dict(row),
            ))
            continue
        index.add(key)

    return index, warnings


# ============================================================================
# INTEGRITY VALIDATION
# ============================================================================

def validate_data_integrity(
    fact_rows: Optional[Sequence[Dict[str, Any]]],
    reference_rows: Optional[Sequence[Dict[str, Any]]]
) -> ValidationReport:
    """
    Validate strings rows against classifications rows.

    Args:
        fact_rows: Parsed strings rows
        reference_rows: Parsed classifications rows

    Returns:
        ValidationReport; is_valid is False iff any error was found

    Raises:
        ValueError: If either row set is None
    """
    if fact_rows is None or reference_rows is None:
        raise ValueError("Both strings and classifications data are required for validation")

    index, reference_warnings = build_reference_index(reference_rows)
    report = ValidationReport(reference_index=index)
    for warning in reference_warnings:
        report.add_issue(warning)

    invalid_rows = set()
    for idx, row in enumerate(fact_rows):
        issue = _check_combination(row, idx + 1, index)
        if issue is not None:
            report.add_issue(issue)
            invalid_rows.add(idx)

    for idx, row in enumerate(fact_rows):
        if idx in invalid_rows:
            continue
        for issue in _check_secondary_fields(row, idx + 1):
            report.add_issue(issue)

    report.stats = ValidationStats(
        fact_count=len(fact_rows),
        reference_count=len(reference_rows),
        invalid_count=len(invalid_rows),
        index_size=len(index),
    )

    logger.debug(
        "integrity_validation_completed",
        is_valid=report.is_valid,
        errors=report.error_count,
        warnings=report.warning_count,
        **report.stats.to_dict()
    )
    return report


# ============================================================================
# PRIVATE HELPERS
# ============================================================================

def _check_combination(
    row: Dict[str, Any],
    row_number: int,
    index: ReferenceKeyIndex
) -> Optional[ValidationIssue]:
    """Return the single error for a strings row, if any."""
    key = fact_key(row)
    if key is None:
        return ValidationIssue(
            kind=MISSING_REQUIRED_FIELD,
            row=row_number,
            message=f"Row {row_number}: Missing required fields (Topic, Subtopic, or Industry)",
            data=dict(row),
        )

    if key not in index:
        return ValidationIssue(
            kind=INVALID_COMBINATION,
            row=row_number,
            message=(
                f'Row {row_number}: Topic "{key.topic}" + SubTopic "{key.subtopic}" + '
                f'Industry "{key.industry}" combination not found in classifications'
            ),
            data=dict(row),
            combination=key,
        )

    return None


def _check_secondary_fields(row: Dict[str, Any], row_number: int) -> List[ValidationIssue]:
    """Tier and Fuzzing-Idx checks; each runs regardless of the other."""
    issues = []

    tier = get_trimmed(row, TIER)
    if tier and tier not in VALID_TIERS:
        issues.append(ValidationIssue(
            kind=INVALID_TIER,
            row=row_number,
            message=f"Row {row_number}: Tier should be 1, 2, or 3",
            data=dict(row),
        ))

    fuzzing_idx = get_trimmed(row, FUZZING_IDX)
    if fuzzing_idx and not is_numeric(fuzzing_idx):
        issues.append(ValidationIssue(
            kind=INVALID_NUMERIC_FIELD,
            row=row_number,
            message=f"Row {row_number}: Fuzzing-Idx should be numeric",
            data=dict(row),
        ))

    return issues
