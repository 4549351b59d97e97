"""Stateless chat endpoint."""

from fastapi import APIRouter, Request

from app.api.dependencies import Dispatcher, default_model_config
from app.core.llm_orchestrator import reply_to_chat
from app.middleware.rate_limiter import AI_LIMIT, limiter
from app.models.check import ChatRequest
from app.models.envelope import success_response

router = APIRouter()


@router.post("")
@limiter.limit(AI_LIMIT)
async def chat_endpoint(request: Request, body: ChatRequest, dispatcher: Dispatcher) -> dict:
    """Send the transcript to the selected provider and return its reply."""
    model_config = body.ai_config or default_model_config()
    reply = await reply_to_chat(body.messages, model_config, dispatcher)
    return success_response({"reply": reply}, provider=model_config.provider)
