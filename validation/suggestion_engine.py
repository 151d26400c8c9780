"""
Correction suggestions for strings rows whose combination is not in classifications.

Each field is compared positionally and case-insensitively:
exact match scores 3, substring either way scores 2, anything else 0.
The three field scores are summed and the best three non-zero candidates
are returned. Scores are shown to users as-is.
"""

from typing import Any, Dict, Iterable, List, Sequence, Union
import structlog

from .base import (
    CompositeKey,
    ScoredCandidate,
    Suggestion,
    ValidationIssue,
    INVALID_COMBINATION,
)
from .integrity_validator import ReferenceKeyIndex, build_reference_index

logger = structlog.get_logger(__name__)

EXACT_MATCH_SCORE = 3
SUBSTRING_MATCH_SCORE = 2
MAX_SUGGESTIONS = 3


def score_field(value: str, candidate: str) -> int:
    """Score one field of an invalid combination against a candidate field."""
    value = value.strip().lower()
    candidate = candidate.strip().lower()
    if value == candidate:
        return EXACT_MATCH_SCORE
    if value in candidate or candidate in value:
        return SUBSTRING_MATCH_SCORE
    return 0


def score_combination(invalid: CompositeKey, candidate: CompositeKey) -> int:
    return sum(score_field(v, c) for v, c in zip(invalid, candidate))


def rank_candidates(
    invalid: CompositeKey,
    index: Iterable[CompositeKey],
    limit: int = MAX_SUGGESTIONS
) -> List[ScoredCandidate]:
    """Top candidates by score; equal scores keep index order."""
    scored = [
        ScoredCandidate(combination=candidate, score=score_combination(invalid, candidate))
        for candidate in index
    ]
    scored = [s for s in scored if s.score > 0]
    # sorted() is stable, ties stay in classifications order
    scored = sorted(scored, key=lambda s: s.score, reverse=True)
    return scored[:limit]


def suggest_corrections(
    invalid_errors: Iterable[ValidationIssue],
    reference: Union[ReferenceKeyIndex, Sequence[Dict[str, Any]]]
) -> List[Suggestion]:
    """
    Suggest corrections for every invalid_combination error.

    Args:
        invalid_errors: Errors from validate_data_integrity; other kinds are ignored
        reference: A ReferenceKeyIndex, or classifications rows to build one from

    Returns:
        One Suggestion per invalid_combination error, in error order
    """
    if isinstance(reference, ReferenceKeyIndex):
        index = reference
    else:
        index, _ = build_reference_index(reference)

    suggestions = []
    for error in invalid_errors:
        if error.kind != INVALID_COMBINATION or error.combination is None:
            continue
        suggestions.append(Suggestion(
            row=error.row,
            invalid=error.combination,
            candidates=rank_candidates(error.combination, index),
        ))

    logger.debug("suggestions_generated", count=len(suggestions), index_size=len(index))
    return suggestions
