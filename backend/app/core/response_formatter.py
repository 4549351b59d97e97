"""Assemble the grammar-check payload returned to clients."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from app.core.exceptions import ResponseFormatError
from app.core.postprocess import calculate_writing_score, count_words
from app.models.check import CheckResponse
from app.models.suggestion import Suggestion

logger = logging.getLogger(__name__)

_COMPUTED_KEYS = ("totalSuggestions", "textLength", "wordCount")


def format_response(
    suggestions: Iterable[Suggestion],
    original_text: str,
    metadata: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build ``{suggestions, writingScore, metadata}`` as a camelCase dict.

    ``processingTime``, ``mode`` and ``strategy`` come from *metadata* when
    given; any other keys there are passed through. The counts are always
    computed here and cannot be overridden.
    """
    items = list(suggestions)
    extras = dict(metadata or {})
    overridden = [k for k in _COMPUTED_KEYS if k in extras]
    if overridden:
        logger.debug("Ignoring caller-supplied metadata keys: %s", overridden)

    meta = {
        "processingTime": extras.pop("processingTime", 0),
        "mode": extras.pop("mode", "unknown"),
        "strategy": extras.pop("strategy", "unknown"),
        **extras,
        "totalSuggestions": len(items),
        "textLength": len(original_text),
        "wordCount": count_words(original_text),
    }
    payload = {
        "suggestions": [s.to_wire() for s in items],
        "writingScore": calculate_writing_score(items, original_text),
        "metadata": meta,
    }

    try:
        validated = CheckResponse.model_validate(payload)
    except ValidationError as exc:
        logger.error("Check response failed validation: %s", exc)
        raise ResponseFormatError(str(exc)) from exc
    return validated.model_dump(by_alias=True, mode="json")
