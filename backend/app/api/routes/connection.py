"""Provider connection test endpoint."""

from fastapi import APIRouter, Request

from app.api.dependencies import Dispatcher
from app.core import llm_orchestrator
from app.middleware.rate_limiter import MODEL_LIMIT, limiter
from app.models.check import TestConnectionRequest
from app.models.envelope import success_response

router = APIRouter()


@router.post("/test-connection")
@limiter.limit(MODEL_LIMIT)
async def test_connection_endpoint(
    request: Request,
    body: TestConnectionRequest,
    dispatcher: Dispatcher,
) -> dict:
    """Verify that the provider answers with the given model and key."""
    result = await llm_orchestrator.test_connection(body, dispatcher)
    return success_response(result)
