"""Provider selection models."""

from __future__ import annotations

import enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Provider(str, enum.Enum):
    ollama = "ollama"
    openai = "openai"
    groq = "groq"
    deepseek = "deepseek"
    qwen = "qwen"
    openrouter = "openrouter"
    lmstudio = "lmstudio"

    @property
    def env_key(self) -> str:
        """Name of the environment variable holding this provider's API key."""
        return f"{self.value.upper()}_API_KEY"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS: dict[Provider, str] = {
    Provider.ollama: "Ollama",
    Provider.openai: "OpenAI",
    Provider.groq: "Groq",
    Provider.deepseek: "DeepSeek",
    Provider.qwen: "Qwen",
    Provider.openrouter: "OpenRouter",
    Provider.lmstudio: "LM Studio",
}

SUPPORTED_PROVIDERS: tuple[str, ...] = tuple(p.value for p in Provider)

# Providers served from the caller's own machine; they never need a credential.
LOCAL_PROVIDERS: frozenset[Provider] = frozenset({Provider.ollama, Provider.lmstudio})


class ChatMessage(BaseModel):
    """A role-tagged chat message."""

    role: Literal["system", "user", "assistant"]
    content: str


class ModelConfig(BaseModel):
    """Which provider/model/credential serves one request.

    ``provider`` stays a free string so that unknown names reach the
    dispatcher and fail with the list of supported providers.
    """

    model_config = ConfigDict(populate_by_name=True)

    provider: str | None = None
    model: str = ""
    api_key: str | None = Field(default=None, alias="apiKey", repr=False)
