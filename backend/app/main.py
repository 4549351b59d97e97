"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import chat, check, connection, enhance, models
from app.config import settings
from app.core.exceptions import DispatchError, ResponseFormatError
from app.middleware.rate_limiter import limiter, rate_limit_exceeded_handler
from app.middleware.request_id import RequestIDMiddleware
from app.models.envelope import ApiError, error_response
from app.models.model_config import SUPPORTED_PROVIDERS

logger = logging.getLogger(__name__)

# Configure logging format based on dev_mode
if not settings.dev_mode:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s","message":"%(message)s"}',
    )
else:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

app = FastAPI(
    title="AI Grammar API",
    description="Grammar and style suggestions from the AI provider of your choice",
    version="1.0.0",
    openapi_url="/api/v1/openapi.json",
    docs_url="/docs" if settings.dev_mode else None,
    redoc_url="/redoc" if settings.dev_mode else None,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.state.limiter = limiter


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if not settings.dev_mode:
            response.headers["Strict-Transport-Security"] = (
                "max-age=63072000; includeSubDomains"
            )
        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


def _request_meta(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    return {"request_id": request_id} if request_id else {}


@app.exception_handler(DispatchError)
async def _dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc)
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(ApiError(code=exc.code, message=str(exc)), **_request_meta(request)),
    )


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        ApiError(
            code="VALIDATION_ERROR",
            message=err["msg"],
            field=".".join(str(part) for part in err["loc"] if part != "body") or None,
        )
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content=error_response(*errors, **_request_meta(request)))


@app.exception_handler(ResponseFormatError)
@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    detail = str(exc) if settings.dev_mode else "Internal server error"
    return JSONResponse(
        status_code=500,
        content=error_response(ApiError(code="INTERNAL_ERROR", message=detail), **_request_meta(request)),
    )


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


# ---------------------------------------------------------------------------
# Routers, all under /api/v1/
# ---------------------------------------------------------------------------

app.include_router(check.router, prefix="/api/v1/orchestrator", tags=["check"])
app.include_router(chat.router, prefix="/api/v1/chat", tags=["chat"])
app.include_router(enhance.router, prefix="/api/v1/enhance", tags=["enhance"])
app.include_router(connection.router, prefix="/api/v1/ai", tags=["providers"])
app.include_router(models.router, prefix="/api/v1/models", tags=["providers"])

# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health_check() -> dict:
    """Liveness check: the API process is alive. Providers are not contacted."""
    return {
        "status": "healthy",
        "services": {
            "openai": "configured" if settings.openai_api_key else "not_configured",
            "groq": "configured" if settings.groq_api_key else "not_configured",
            "deepseek": "configured" if settings.deepseek_api_key else "not_configured",
            "qwen": "configured" if settings.qwen_api_key else "not_configured",
            "openrouter": "configured" if settings.openrouter_api_key else "not_configured",
        },
        "hosted": settings.hosted_deployment,
    }


@app.get("/api/v1/version")
async def version() -> dict:
    """Return build / version metadata."""
    return {
        "version": app.version,
        "title": app.title,
        "api_prefix": "/api/v1",
        "providers": list(SUPPORTED_PROVIDERS),
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {"message": "AI Grammar API", "docs": "/docs"}
