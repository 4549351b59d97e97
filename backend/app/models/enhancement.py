"""Request models for the whole-text rewrite endpoints."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.config import settings
from app.core.prompt_builder import GRADE_RANGE, SIMPLIFY_DEFAULT_GRADE
from app.models.model_config import ModelConfig


class RewriteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(max_length=settings.max_text_length)
    ai_config: ModelConfig | None = Field(default=None, alias="modelConfig")
    user_api_key: str | None = Field(default=None, alias="userApiKey", repr=False)


class EnhanceRequest(RewriteRequest):
    enhancement_type: Literal["comprehensive", "formal", "casual"] = Field(
        default="comprehensive", alias="enhancementType"
    )


class HumanizeRequest(RewriteRequest):
    """Both options are required; there is no sensible default voice."""

    tone: Literal["neutral", "friendly", "professional"]
    strength: Literal["light", "medium", "strong"]


class SimplifyRequest(RewriteRequest):
    target_grade: int = Field(
        default=SIMPLIFY_DEFAULT_GRADE,
        ge=GRADE_RANGE[0],
        le=GRADE_RANGE[1],
        strict=True,
        alias="targetGrade",
    )


class ExpandRequest(RewriteRequest):
    target_length: Literal["short", "medium", "long"] = Field(default="medium", alias="targetLength")


class CondenseRequest(RewriteRequest):
    target_length: Literal["short", "medium", "summary"] = Field(default="medium", alias="targetLength")
