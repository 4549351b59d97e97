"""Grammar-check endpoint."""

import logging

from fastapi import APIRouter, Request

from app.api.dependencies import Dispatcher, RequestId, resolve_model_config
from app.core.llm_orchestrator import check_text
from app.middleware.rate_limiter import AI_LIMIT, limiter
from app.models.check import CheckRequest, CheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/check", response_model=CheckResponse, response_model_by_alias=True)
@limiter.limit(AI_LIMIT)
async def check_endpoint(
    request: Request,
    body: CheckRequest,
    dispatcher: Dispatcher,
    request_id: RequestId,
) -> dict:
    """Check text with the selected provider and return positional suggestions."""
    return await check_text(
        body.text,
        resolve_model_config(body.ai_config, body.user_api_key),
        dispatcher,
        body.prompt_options(),
        language=body.language,
        request_id=request_id,
    )
