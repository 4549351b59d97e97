"""Two-phase validation of raw model suggestions.

Phase 1 checks the shape against a closed, strictly typed schema. Phase 2
checks the claimed span against the source text. Models miscount offsets all
the time, so phase 2 is where most candidates are dropped, and it is the only
thing standing between a hallucinated offset and a client applying the edit.

Category, severity and source are cosmetic: values outside their sets are
coerced to a default instead of rejecting an otherwise-correct edit.
"""

import enum
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from app.models.suggestion import (
    EXPLANATION_MAX_CHARS,
    Category,
    Severity,
    Source,
    Suggestion,
    SuggestionCandidate,
    SuggestionRejection,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=enum.Enum)

_SENTENCE_END = re.compile(r"[.!?]+(?=\s|$)")


def validate_suggestion(
    candidate: Any,
    original_text: str,
    *,
    candidate_index: int | None = None,
) -> Suggestion | SuggestionRejection:
    """Return a normalized Suggestion, or the reason the candidate was rejected."""
    if not isinstance(candidate, Mapping):
        return SuggestionRejection(
            kind="schema",
            message="Suggestion must be a JSON object",
            expected="object",
            actual=type(candidate).__name__,
            candidate_index=candidate_index,
        )

    try:
        shaped = SuggestionCandidate.model_validate(dict(candidate))
    except ValidationError as exc:
        return _schema_rejection(exc, candidate_index)

    if shaped.end_index <= shaped.index:
        return SuggestionRejection(
            kind="schema",
            field="endIndex",
            message="endIndex must be greater than index",
            expected=f"> {shaped.index}",
            actual=shaped.end_index,
            candidate_index=candidate_index,
        )

    mismatch = check_position(shaped.original, shaped.index, shaped.end_index, original_text)
    if mismatch is not None:
        mismatch.candidate_index = candidate_index
        return mismatch

    sentence_index = shaped.sentence_index
    if sentence_index is None:
        sentence_index = sentence_index_at(original_text, shaped.index)

    return Suggestion(
        original=shaped.original,
        suggested=shaped.suggested,
        explanation=shaped.explanation[:EXPLANATION_MAX_CHARS],
        index=shaped.index,
        end_index=shaped.end_index,
        category=_coerce(Category, shaped.category, Category.style),
        severity=_coerce(Severity, shaped.severity, Severity.medium),
        confidence=shaped.confidence,
        sentence_index=sentence_index,
        rule_id=shaped.rule_id or "unknown",
        source=_coerce(Source, shaped.source, Source.unknown),
    )


def check_position(
    original: str, index: int, end_index: int, original_text: str
) -> SuggestionRejection | None:
    """Verify that ``original_text[index:end_index] == original``."""
    if end_index > len(original_text):
        return SuggestionRejection(
            kind="position",
            field="endIndex",
            message=(
                f"Invalid position: index={index}, endIndex={end_index}, "
                f"textLength={len(original_text)}"
            ),
            expected=f"<= {len(original_text)}",
            actual=end_index,
        )
    actual = original_text[index:end_index]
    if actual != original:
        return SuggestionRejection(
            kind="position",
            field="original",
            message=f'Text mismatch: expected "{original}", got "{actual}" at position {index}-{end_index}',
            expected=original,
            actual=actual,
        )
    return None


def validate_suggestions(
    candidates: Iterable[Any], original_text: str
) -> tuple[list[Suggestion], list[SuggestionRejection]]:
    """Validate a batch; one bad candidate never affects the others."""
    accepted: list[Suggestion] = []
    rejected: list[SuggestionRejection] = []
    for i, candidate in enumerate(candidates):
        result = validate_suggestion(candidate, original_text, candidate_index=i)
        if isinstance(result, SuggestionRejection):
            logger.debug("Dropped candidate %d (%s): %s", i, result.kind, result.message)
            rejected.append(result)
        else:
            accepted.append(result)
    return accepted, rejected


def sentence_index_at(text: str, offset: int) -> int:
    """0-based index of the sentence containing *offset*."""
    return len(_SENTENCE_END.findall(text, 0, offset))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _coerce(enum_cls: type[E], value: str | None, default: E) -> E:
    if value is None:
        return default
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return default


def _schema_rejection(exc: ValidationError, candidate_index: int | None) -> SuggestionRejection:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"]) or None
    kind = error["type"]
    if kind == "extra_forbidden":
        message = f"Unknown field '{field}'"
        expected = None
        actual = error.get("input")
    elif kind == "missing":
        message = f"Missing required field '{field}'"
        expected = "present"
        actual = None
    else:
        message = f"{field}: {error['msg']}"
        expected = error.get("ctx")
        actual = error.get("input")
    return SuggestionRejection(
        kind="schema",
        field=field,
        message=message,
        expected=expected,
        actual=actual,
        candidate_index=candidate_index,
    )
