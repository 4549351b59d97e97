"""Grammar-check, chat and connection-test request/response models."""

from pydantic import BaseModel, ConfigDict, Field

from app.config import settings
from app.models.model_config import ChatMessage, ModelConfig
from app.models.suggestion import Suggestion


class CheckRequest(BaseModel):
    """Request for a grammar check.

    Style options are free-form here; out-of-set values fall back to their
    defaults when the prompt is built.
    """

    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(max_length=settings.max_text_length)
    ai_config: ModelConfig | None = Field(default=None, alias="modelConfig")
    user_api_key: str | None = Field(default=None, alias="userApiKey", repr=False)
    language: str = "en-US"
    dialect: str | None = None
    serial_comma: str | None = Field(default=None, alias="serialComma")
    title_case_style: str | None = Field(default=None, alias="titleCaseStyle")
    target_grade: int | None = Field(default=None, alias="targetGrade")

    def prompt_options(self) -> dict:
        return self.model_dump(
            by_alias=True,
            include={"dialect", "serial_comma", "title_case_style", "target_grade"},
            exclude_none=True,
        )


class ChatRequest(BaseModel):
    """A stateless chat turn: the whole transcript is sent every time."""

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(min_length=1)
    ai_config: ModelConfig | None = Field(default=None, alias="modelConfig")


class TestConnectionRequest(ModelConfig):
    """Provider/model/apiKey to test."""


class ResponseMetadata(BaseModel):
    """Metadata block of a check response. Callers may add extra keys."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    total_suggestions: int = Field(alias="totalSuggestions", ge=0)
    text_length: int = Field(alias="textLength", ge=0)
    word_count: int = Field(alias="wordCount", ge=0)
    processing_time: float = Field(alias="processingTime", ge=0)
    mode: str
    strategy: str


class CheckResponse(BaseModel):
    """Closed top-level payload returned to clients."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    suggestions: list[Suggestion]
    writing_score: int = Field(alias="writingScore", ge=0, le=100)
    metadata: ResponseMetadata
