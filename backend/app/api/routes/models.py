"""Local model listing."""

from fastapi import APIRouter, Request

from app.api.dependencies import Dispatcher
from app.core.llm_orchestrator import list_local_models
from app.middleware.rate_limiter import MODEL_LIMIT, limiter
from app.models.envelope import success_response

router = APIRouter()


@router.get("/ollama")
@limiter.limit(MODEL_LIMIT)
async def ollama_models_endpoint(request: Request, dispatcher: Dispatcher) -> dict:
    """Models installed on the local Ollama server."""
    models = await list_local_models(dispatcher)
    return success_response({"models": models}, count=len(models))
