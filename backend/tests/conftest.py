"""Shared test fixtures for the AI Grammar API backend tests."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tenacity import wait_none

from app.api.dependencies import get_dispatcher
from app.main import app
from app.middleware.rate_limiter import limiter
from app.models.model_config import Provider
from app.services.dispatch import AIDispatcher
from app.services.llm_client import CompletionRequest, OllamaClient, ProviderClient

# Rate limits are exercised by slowapi's own tests; keep them out of ours.
limiter.enabled = False


class FakeClient(ProviderClient):
    """Provider client that records requests and returns a canned reply.

    Exceptions queued in ``errors`` are raised (one per call) before the
    reply is returned.
    """

    def __init__(self, provider: Provider, reply: str = "OK"):
        super().__init__(provider, timeout=1.0)
        self.reply = reply
        self.errors: list[Exception] = []
        self.requests: list[CompletionRequest] = []

    async def generate(self, request: CompletionRequest) -> str:
        self.requests.append(request)
        if self.errors:
            raise self.errors.pop(0)
        return self.reply


class FakeOllamaClient(OllamaClient):
    """Ollama client with a canned reply and an in-memory registry."""

    def __init__(self, reply: str = "OK", models: list[dict] | None = None):
        super().__init__(
            "http://ollama.test", timeout=1.0, registry_timeout=1.0, pull_timeout=1.0,
        )
        self.reply = reply
        self.models = models if models is not None else [
            {"name": "gemma3:1b", "size": 815_319_791, "modified_at": "2025-01-01T00:00:00Z"},
        ]
        self.errors: list[Exception] = []
        self.requests: list[CompletionRequest] = []

    async def list_models(self) -> list[dict]:
        if self.errors:
            raise self.errors.pop(0)
        return self.models

    async def generate(self, request: CompletionRequest) -> str:
        self.requests.append(request)
        if self.errors:
            raise self.errors.pop(0)
        return self.reply


@pytest.fixture
def clients() -> dict[Provider, ProviderClient]:
    """A full provider registry of fakes."""
    registry: dict[Provider, ProviderClient] = {p: FakeClient(p) for p in Provider}
    registry[Provider.ollama] = FakeOllamaClient()
    return registry


@pytest.fixture
def make_dispatcher(clients):
    """Factory for dispatchers over the fake registry, with no retry back-off."""

    def _make(**kwargs) -> AIDispatcher:
        kwargs.setdefault("retry_wait", wait_none())
        return AIDispatcher(clients, **kwargs)

    return _make


@pytest_asyncio.fixture
async def client(make_dispatcher):
    """ASGI client whose dispatcher routes to the fake provider registry."""
    dispatcher = make_dispatcher()
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
