"""Whole-text rewrite endpoints: enhance, humanize, simplify, expand, condense."""

import logging

from fastapi import APIRouter, Request

from app.api.dependencies import Dispatcher, RequestId, resolve_model_config
from app.core import llm_orchestrator
from app.middleware.rate_limiter import AI_LIMIT, limiter
from app.models.enhancement import (
    CondenseRequest,
    EnhanceRequest,
    ExpandRequest,
    HumanizeRequest,
    SimplifyRequest,
)
from app.models.envelope import success_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/full-text")
@limiter.limit(AI_LIMIT)
async def enhance_endpoint(
    request: Request, body: EnhanceRequest, dispatcher: Dispatcher, request_id: RequestId
) -> dict:
    """Rewrite the whole text and summarize the improvements."""
    result = await llm_orchestrator.enhance_text(
        body.text,
        resolve_model_config(body.ai_config, body.user_api_key),
        dispatcher,
        body.enhancement_type,
    )
    logger.info(
        "Enhanced text (%s): %d -> %d words",
        body.enhancement_type,
        result["metrics"]["originalWordCount"],
        result["metrics"]["enhancedWordCount"],
    )
    return success_response(result, request_id=request_id)


@router.post("/humanize")
@limiter.limit(AI_LIMIT)
async def humanize_endpoint(
    request: Request, body: HumanizeRequest, dispatcher: Dispatcher, request_id: RequestId
) -> dict:
    result = await llm_orchestrator.humanize_text(
        body.text,
        resolve_model_config(body.ai_config, body.user_api_key),
        dispatcher,
        tone=body.tone,
        strength=body.strength,
    )
    return success_response(result, request_id=request_id)


@router.post("/simplify")
@limiter.limit(AI_LIMIT)
async def simplify_endpoint(
    request: Request, body: SimplifyRequest, dispatcher: Dispatcher, request_id: RequestId
) -> dict:
    result = await llm_orchestrator.simplify_text(
        body.text,
        resolve_model_config(body.ai_config, body.user_api_key),
        dispatcher,
        target_grade=body.target_grade,
    )
    return success_response(result, request_id=request_id)


@router.post("/expand")
@limiter.limit(AI_LIMIT)
async def expand_endpoint(
    request: Request, body: ExpandRequest, dispatcher: Dispatcher, request_id: RequestId
) -> dict:
    result = await llm_orchestrator.expand_text(
        body.text,
        resolve_model_config(body.ai_config, body.user_api_key),
        dispatcher,
        target_length=body.target_length,
    )
    return success_response(result, request_id=request_id)


@router.post("/condense")
@limiter.limit(AI_LIMIT)
async def condense_endpoint(
    request: Request, body: CondenseRequest, dispatcher: Dispatcher, request_id: RequestId
) -> dict:
    result = await llm_orchestrator.condense_text(
        body.text,
        resolve_model_config(body.ai_config, body.user_api_key),
        dispatcher,
        target_length=body.target_length,
    )
    return success_response(result, request_id=request_id)
