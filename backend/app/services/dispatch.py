"""Provider dispatch: resolve provider, model and credential, then call the client.

Deployment-specific routing (replacing a local provider on a hosted server,
falling back to the local server when a fast cloud provider has no key) is
driven by an injected ``DeploymentPolicy`` rather than by sniffing the
environment.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from app.config import Settings
from app.core.exceptions import (
    EmptyInputError,
    MissingCredentialError,
    ProviderTransportError,
    UnsupportedProviderError,
)
from app.models.model_config import LOCAL_PROVIDERS, ChatMessage, ModelConfig, Provider
from app.services.llm_client import (
    DEFAULT_MODELS,
    CompletionRequest,
    OllamaClient,
    ProviderClient,
    build_provider_clients,
)

logger = logging.getLogger(__name__)

SUBSTITUTION_MODELS: dict[Provider, str] = {
    Provider.groq: "llama-3.1-8b-instant",
    Provider.openai: "gpt-3.5-turbo",
}


def resolve_provider(name: str | None) -> Provider:
    """Case-insensitive provider lookup; unknown or missing names are rejected."""
    if not name or not name.strip():
        raise UnsupportedProviderError(None)
    try:
        return Provider(name.strip().lower())
    except ValueError:
        raise UnsupportedProviderError(name) from None


@dataclass(frozen=True)
class DeploymentPolicy:
    """Routing rules that depend on where the server runs."""

    auto_substitute_local_provider: bool = False
    substitution_priority: tuple[Provider, ...] = (Provider.groq, Provider.openai)
    substitution_models: Mapping[Provider, str] = field(
        default_factory=lambda: dict(SUBSTITUTION_MODELS)
    )
    allow_fallback_to_local: bool = False
    fallback_providers: frozenset[Provider] = frozenset({Provider.groq})
    fallback_local_model: str = "gemma3:1b"

    @classmethod
    def from_settings(cls, cfg: Settings) -> DeploymentPolicy:
        priority = tuple(resolve_provider(name) for name in cfg.substitution_priority)
        local = [p.value for p in priority if p in LOCAL_PROVIDERS]
        if local:
            raise ValueError(f"SUBSTITUTION_PRIORITY may only name cloud providers, got {local}")
        return cls(
            auto_substitute_local_provider=cfg.hosted_deployment,
            substitution_priority=priority,
            allow_fallback_to_local=cfg.allow_fallback_to_local,
            fallback_local_model=cfg.fallback_local_model,
        )


@dataclass
class DispatchResult:
    """Reply text plus the route that actually produced it."""

    text: str
    provider: Provider
    model: str
    substituted: bool = False


class AIDispatcher:
    """Routes a prompt or message list to exactly one provider."""

    def __init__(
        self,
        clients: Mapping[Provider, ProviderClient],
        *,
        credentials: Mapping[Provider, str] | None = None,
        policy: DeploymentPolicy | None = None,
        max_attempts: int = 1,
        retry_wait: wait_base | None = None,
    ):
        missing = [p.value for p in Provider if p not in clients]
        if missing:
            raise ValueError(f"No client registered for provider(s): {', '.join(missing)}")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.clients = dict(clients)
        self.credentials = {p: key for p, key in (credentials or {}).items() if key}
        self.policy = policy or DeploymentPolicy()
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait or wait_exponential(min=1, max=10)

    @classmethod
    def from_settings(cls, cfg: Settings) -> AIDispatcher:
        return cls(
            build_provider_clients(cfg),
            credentials={
                Provider.openai: cfg.openai_api_key,
                Provider.groq: cfg.groq_api_key,
                Provider.deepseek: cfg.deepseek_api_key,
                Provider.qwen: cfg.qwen_api_key,
                Provider.openrouter: cfg.openrouter_api_key,
                Provider.lmstudio: cfg.lmstudio_api_key,
            },
            policy=DeploymentPolicy.from_settings(cfg),
            max_attempts=cfg.provider_max_attempts,
        )

    @property
    def ollama(self) -> OllamaClient:
        client = self.clients[Provider.ollama]
        if not isinstance(client, OllamaClient):
            raise TypeError("The ollama client does not expose the model registry")
        return client

    def resolve_credential(self, provider: Provider, explicit: str | None = None) -> str | None:
        """Explicit key first, then the configured one."""
        if explicit and explicit.strip():
            return explicit.strip()
        return self.credentials.get(provider)

    async def dispatch(
        self,
        prompt_or_messages: str | Sequence[ChatMessage | Mapping[str, Any]],
        model_config: ModelConfig | None,
    ) -> str:
        """Return the provider's reply text."""
        result = await self.dispatch_with_route(prompt_or_messages, model_config)
        return result.text

    async def dispatch_with_route(
        self,
        prompt_or_messages: str | Sequence[ChatMessage | Mapping[str, Any]],
        model_config: ModelConfig | None,
    ) -> DispatchResult:
        """Like dispatch(), but also report which provider and model answered."""
        prompt, messages = _normalize_input(prompt_or_messages)
        if model_config is None:
            raise UnsupportedProviderError(None)

        provider = resolve_provider(model_config.provider)
        model = model_config.model.strip() or DEFAULT_MODELS[provider]
        api_key: str | None = None
        substituted = False

        if provider is Provider.ollama and self.policy.auto_substitute_local_provider:
            for candidate in self.policy.substitution_priority:
                key = self.credentials.get(candidate)
                if key:
                    logger.warning(
                        "Hosted deployment: switching from ollama to %s for this request", candidate.value
                    )
                    provider = candidate
                    model = self.policy.substitution_models.get(candidate, DEFAULT_MODELS[candidate])
                    api_key = key
                    substituted = True
                    break
            else:
                logger.warning("Hosted deployment has no cloud API key configured, attempting ollama")

        if not substituted:
            api_key = self.resolve_credential(provider, model_config.api_key)
            if provider not in LOCAL_PROVIDERS and not api_key:
                if self.policy.allow_fallback_to_local and provider in self.policy.fallback_providers:
                    logger.info("%s API key not found, falling back to ollama", provider.label)
                    provider = Provider.ollama
                    model = self.policy.fallback_local_model
                    substituted = True
                else:
                    raise MissingCredentialError(provider)

        logger.info(
            "Dispatching to %s  model=%s  api_key_configured=%s  substituted=%s",
            provider.value, model, bool(api_key), substituted,
        )
        request = CompletionRequest(model=model, prompt=prompt, messages=messages, api_key=api_key)
        text = await self._call(self.clients[provider], request)
        return DispatchResult(text=text, provider=provider, model=model, substituted=substituted)

    async def _call(self, client: ProviderClient, request: CompletionRequest) -> str:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(ProviderTransportError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "Retrying %s (attempt %d/%d)",
                        client.provider.value, attempt.retry_state.attempt_number, self.max_attempts,
                    )
                return await client.generate(request)
        raise AssertionError("unreachable")  # pragma: no cover


def _normalize_input(
    prompt_or_messages: str | Sequence[ChatMessage | Mapping[str, Any]],
) -> tuple[str | None, list[ChatMessage] | None]:
    if isinstance(prompt_or_messages, str):
        if not prompt_or_messages.strip():
            raise EmptyInputError("prompt")
        return prompt_or_messages, None

    messages = [
        m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m)
        for m in prompt_or_messages or []
    ]
    if not messages or not any(m.content.strip() for m in messages):
        raise EmptyInputError("messages")
    return None, messages
