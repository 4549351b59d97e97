"""Per-client rate limiting using slowapi."""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.config import settings
from app.models.envelope import ApiError, error_response

# No user accounts here, so the client address is the key
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

# Convenience limit strings built from config
AI_LIMIT = f"{settings.rate_limit_ai}/minute"
MODEL_LIMIT = f"{settings.rate_limit_models}/minute"


def rate_limit_exceeded_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return a JSON envelope when rate limit is exceeded."""
    return JSONResponse(
        status_code=429,
        content=error_response(ApiError(code="RATE_LIMITED", message=str(exc.detail))),
    )
