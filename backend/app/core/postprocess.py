"""Suggestion post-processing: validate, deduplicate, resolve overlaps, sort, score."""

import logging
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.core.suggestion_validator import validate_suggestions
from app.models.suggestion import SEVERITY_WEIGHTS, Severity, Suggestion, SuggestionSet

logger = logging.getLogger(__name__)


def process_suggestions(candidates: Iterable[Any], original_text: str) -> SuggestionSet:
    """Turn raw model candidates into an overlap-free, index-sorted set.

    Never raises for malformed candidates; they are recorded as rejections.
    """
    accepted, rejections = validate_suggestions(candidates, original_text)

    unique = deduplicate_suggestions(accepted)
    resolved = resolve_overlaps(unique)
    resolved.sort(key=lambda s: s.index)

    result = SuggestionSet(
        suggestions=resolved,
        rejections=rejections,
        duplicates_dropped=len(accepted) - len(unique),
        overlaps_dropped=len(unique) - len(resolved),
    )
    if result.dropped:
        logger.info(
            "Suggestions: %d kept, %d rejected, %d duplicate, %d overlapping",
            len(result), len(rejections), result.duplicates_dropped, result.overlaps_dropped,
        )
    return result


def suggestions_overlap(a: Suggestion, b: Suggestion) -> bool:
    """True if the half-open ranges ``[index, endIndex)`` intersect."""
    return not (a.end_index <= b.index or b.end_index <= a.index)


def deduplicate_suggestions(suggestions: Iterable[Suggestion]) -> list[Suggestion]:
    """Drop repeats of ``(index, endIndex, suggested)``; the first one wins."""
    seen: set[tuple[int, int, str]] = set()
    unique: list[Suggestion] = []
    for s in suggestions:
        if s.dedup_key in seen:
            continue
        seen.add(s.dedup_key)
        unique.append(s)
    return unique


def resolve_overlaps(suggestions: Iterable[Suggestion]) -> list[Suggestion]:
    """Greedy confidence sweep over suggestions ordered by ``index``.

    A candidate that overlaps accepted suggestions is admitted only when its
    confidence is strictly higher than every one of them, in which case they
    are all evicted. Otherwise the candidate is discarded, so on a tie the
    earlier suggestion stays. The result is overlap-free but not necessarily
    the highest-total-confidence subset.
    """
    accepted: list[Suggestion] = []
    for candidate in sorted(suggestions, key=lambda s: s.index):
        clashes = [s for s in accepted if suggestions_overlap(s, candidate)]
        if not clashes:
            accepted.append(candidate)
            continue
        if all(candidate.confidence > s.confidence for s in clashes):
            evicted = {id(s) for s in clashes}
            accepted = [s for s in accepted if id(s) not in evicted]
            accepted.append(candidate)
    return accepted


def count_words(text: str) -> int:
    return len(text.split())


def calculate_writing_score(suggestions: Sequence[Suggestion], text: str) -> int:
    """0-100 score from severity-weighted error density and mean confidence.

    Blank text scores 0; non-blank text with no suggestions scores 100.
    """
    words = count_words(text)
    if words == 0:
        return 0

    weighted = sum(SEVERITY_WEIGHTS[Severity(s.severity)] for s in suggestions)
    per_100_words = weighted / words * 100
    base = max(0.0, 100 - 10 * per_100_words)

    mean_confidence = (
        sum(s.confidence for s in suggestions) / len(suggestions) if suggestions else 1.0
    )
    score = Decimal(str(base * mean_confidence)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(100, max(0, int(score)))


def apply_suggestions(text: str, suggestions: Iterable[Suggestion]) -> str:
    """Apply edits from the highest index down so earlier offsets stay valid.

    Expects an overlap-free set, such as the output of process_suggestions.
    """
    corrected = text
    for s in sorted(suggestions, key=lambda s: s.index, reverse=True):
        corrected = corrected[: s.index] + s.suggested + corrected[s.end_index :]
    return corrected
