"""Shared utility for parsing JSON from LLM responses."""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCED = re.compile(r"```(?:json)?\s*(\[.*\]|\{.*\})\s*```", re.DOTALL)
_EMBEDDED_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def extract_suggestion_candidates(content: str) -> list[Any]:
    """Pull the list of raw suggestion candidates out of a model reply.

    Items are returned unvalidated; non-object items are left in place so the
    validator can report them.

    Handles three formats:
    1. Direct JSON: [{"key": "value"}] (or {"suggestions": [...]})
    2. Markdown fence: ```json\\n[...]\\n```
    3. Embedded JSON: text before [{"key": "value"}] text after

    Anything else yields an empty list.
    """
    if not content or not content.strip():
        return []

    # Try parsing directly as JSON
    data = _loads(content.strip())
    if data is not None:
        return _as_candidates(data)

    # Try extracting from markdown code fence
    match = _FENCED.search(content)
    if match:
        data = _loads(match.group(1))
        if data is not None:
            return _as_candidates(data)

    # Try the widest [...] span, then every "[" in turn
    match = _EMBEDDED_ARRAY.search(content)
    if match:
        data = _loads(match.group(0))
        if isinstance(data, list):
            return data

    decoder = json.JSONDecoder()
    for start in (m.start() for m in re.finditer(r"\[", content)):
        try:
            data, _ = decoder.raw_decode(content, start)
        except json.JSONDecodeError:
            continue
        if isinstance(data, list) and (not data or isinstance(data[0], dict)):
            return data

    logger.warning("Could not parse JSON from LLM response: %s", content[:200])
    return []


def _loads(raw: str) -> Any | None:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None


def _as_candidates(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        inner = data.get("suggestions")
        if isinstance(inner, list):
            return inner
        return [data]
    logger.warning("LLM returned JSON %s instead of an array", type(data).__name__)
    return []
