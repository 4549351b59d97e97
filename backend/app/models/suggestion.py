"""Suggestion models: a single positional edit and the set built from them."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field

EXPLANATION_MAX_CHARS = 160


class Category(str, enum.Enum):
    grammar = "grammar"
    spelling = "spelling"
    punctuation = "punctuation"
    style = "style"
    tone = "tone"
    readability = "readability"


class Severity(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class Source(str, enum.Enum):
    ai = "ai"
    rb = "rb"
    merged = "merged"
    unknown = "unknown"


SEVERITY_WEIGHTS: dict[Severity, float] = {
    Severity.low: 0.5,
    Severity.medium: 1.0,
    Severity.high: 2.0,
}


class SuggestionCandidate(BaseModel):
    """Closed, strictly typed shape a raw model suggestion must match.

    Enum-like fields are plain strings here; out-of-set values are coerced
    later rather than rejected.
    """

    model_config = ConfigDict(extra="forbid", strict=True)

    original: str = Field(min_length=1)
    suggested: str
    explanation: str = Field(min_length=1)
    index: int = Field(ge=0)
    end_index: int = Field(alias="endIndex", ge=0)
    category: str | None = None
    severity: str | None = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    sentence_index: int | None = Field(default=None, alias="sentenceIndex", ge=0)
    rule_id: str | None = Field(default=None, alias="ruleId")
    source: str | None = None


class Suggestion(BaseModel):
    """A validated edit whose ``original`` matches ``text[index:endIndex]``."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    original: str
    suggested: str
    explanation: str = Field(max_length=EXPLANATION_MAX_CHARS)
    index: int = Field(ge=0)
    end_index: int = Field(alias="endIndex", gt=0)
    category: Category = Category.style
    severity: Severity = Severity.medium
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    sentence_index: int = Field(default=0, alias="sentenceIndex", ge=0)
    rule_id: str = Field(default="unknown", alias="ruleId")
    source: Source = Source.unknown

    @property
    def dedup_key(self) -> tuple[int, int, str]:
        return (self.index, self.end_index, self.suggested)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class SuggestionRejection(BaseModel):
    """Why a candidate was dropped. Returned, never raised."""

    kind: Literal["schema", "position"]
    field: str | None = None
    message: str
    expected: Any = None
    actual: Any = None
    candidate_index: int | None = None


@dataclass
class SuggestionSet:
    """Overlap-free, index-sorted, deduplicated suggestions over one text."""

    suggestions: list[Suggestion] = field(default_factory=list)
    rejections: list[SuggestionRejection] = field(default_factory=list)
    duplicates_dropped: int = 0
    overlaps_dropped: int = 0

    def __iter__(self) -> Iterator[Suggestion]:
        return iter(self.suggestions)

    def __len__(self) -> int:
        return len(self.suggestions)

    @property
    def dropped(self) -> int:
        return len(self.rejections) + self.duplicates_dropped + self.overlaps_dropped
