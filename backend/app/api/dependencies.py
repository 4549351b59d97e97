"""API dependencies: the shared provider dispatcher and request defaults."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from app.config import settings
from app.models.model_config import ModelConfig
from app.services.dispatch import AIDispatcher

# ---------------------------------------------------------------------------
# Dispatcher dependency
# ---------------------------------------------------------------------------


@lru_cache
def get_dispatcher() -> AIDispatcher:
    """Build the dispatcher once from settings; tests override this dependency."""
    return AIDispatcher.from_settings(settings)


Dispatcher = Annotated[AIDispatcher, Depends(get_dispatcher)]

# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def default_model_config() -> ModelConfig:
    """Model configuration used when a request does not send one."""
    return ModelConfig(provider=settings.default_provider, model=settings.default_model)


def resolve_model_config(ai_config: ModelConfig | None, user_api_key: str | None = None) -> ModelConfig:
    """Request model configuration with the default filled in and ``userApiKey`` applied.

    A key inside ``modelConfig`` wins over ``userApiKey``.
    """
    model_config = ai_config or default_model_config()
    if user_api_key and not model_config.api_key:
        model_config = model_config.model_copy(update={"api_key": user_api_key})
    return model_config


def get_request_id(request: Request) -> str | None:
    """Request ID set by RequestIDMiddleware."""
    return getattr(request.state, "request_id", None)


RequestId = Annotated[str | None, Depends(get_request_id)]
