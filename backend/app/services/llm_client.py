"""Centralized LLM client with multi-provider support.

OpenAI, Groq, DeepSeek, OpenRouter and LM Studio all expose an
OpenAI-compatible ``/chat/completions`` endpoint, so they share one client;
only the URL, auth header, and timeout differ. Ollama (native
``/api/generate``) and Qwen (DashScope envelope) get their own.

Every client returns the unwrapped reply text with a single outer code fence
removed, and raises ``ProviderTransportError`` for anything that goes wrong
on the wire.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from app.config import Settings
from app.core.exceptions import ProviderTransportError
from app.models.model_config import ChatMessage, Provider

logger = logging.getLogger(__name__)

# Used when a request names a provider but no model
DEFAULT_MODELS: dict[Provider, str] = {
    Provider.ollama: "gemma3:1b",
    Provider.openai: "gpt-3.5-turbo",
    Provider.groq: "llama-3.1-8b-instant",
    Provider.deepseek: "deepseek-chat",
    Provider.qwen: "qwen-turbo",
    Provider.openrouter: "openai/gpt-3.5-turbo",
    Provider.lmstudio: "local-model",
}

_OUTER_FENCE = re.compile(r"\A```[\w+-]*[ \t]*\n?(.*?)\n?[ \t]*```\Z", re.DOTALL)


@dataclass
class CompletionRequest:
    """One provider call: either a bare prompt or a message list."""

    model: str
    prompt: str | None = None
    messages: Sequence[ChatMessage] | None = None
    api_key: str | None = None

    def as_messages(self) -> list[dict[str, str]]:
        if self.messages:
            return [m.model_dump() for m in self.messages]
        return [{"role": "user", "content": self.prompt or ""}]

    def as_prompt(self) -> str:
        if self.messages:
            return messages_to_prompt(self.messages)
        return self.prompt or ""


def strip_code_fence(text: str) -> str:
    """Remove one fenced block wrapping the whole reply, if there is one.

    Replies with prose around the fence, or with several fences, are returned
    unchanged; the JSON extractor deals with those.
    """
    stripped = text.strip()
    match = _OUTER_FENCE.match(stripped)
    if not match or "```" in match.group(1):
        return text
    return match.group(1).strip()


def messages_to_prompt(messages: Sequence[ChatMessage]) -> str:
    """Flatten a chat transcript for completion-style models."""
    parts: list[str] = []
    for m in messages:
        if m.role == "system":
            parts.append(m.content)
        else:
            parts.append(f"{m.role.capitalize()}: {m.content}")
    parts.append("Assistant:")
    return "\n\n".join(parts)


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


class ProviderClient(ABC):
    """Transport for a single provider."""

    provider: Provider

    def __init__(self, provider: Provider, *, timeout: float):
        self.provider = provider
        self.timeout = timeout

    @abstractmethod
    async def generate(self, request: CompletionRequest) -> str:
        """Send the request and return the unwrapped, fence-stripped reply."""

    async def _request_json(
        self,
        url: str,
        *,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        timeout = timeout if timeout is not None else self.timeout
        name = self.provider.value
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10.0)) as client:
                if payload is None:
                    response = await client.get(url, headers=headers)
                else:
                    response = await client.post(url, headers=headers, json=payload)
                logger.debug("%s -> %s", url, response.status_code)
                if response.status_code != 200:
                    logger.error("%s error body: %s", name, response.text[:500])
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderTransportError(
                name, f"request timed out after {timeout:g}s", timed_out=True
            ) from exc
        except httpx.HTTPStatusError as exc:
            code = exc.response.status_code
            raise ProviderTransportError(
                name, f"API returned HTTP {code}", status_code=code
            ) from exc
        except httpx.RequestError as exc:
            raise ProviderTransportError(name, f"request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderTransportError(name, "response body is not valid JSON") from exc

    def _envelope_error(self, detail: str) -> ProviderTransportError:
        return ProviderTransportError(self.provider.value, f"unexpected response format: {detail}")


class OllamaClient(ProviderClient):
    """Local Ollama server, native generate API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float,
        registry_timeout: float,
        pull_timeout: float,
    ):
        super().__init__(Provider.ollama, timeout=timeout)
        self.base_url = base_url.rstrip("/")
        self.registry_timeout = registry_timeout
        self.pull_timeout = pull_timeout

    async def list_models(self) -> list[dict[str, Any]]:
        """Models in the local registry (name, size, modified_at)."""
        data = await self._request_json(
            f"{self.base_url}/api/tags", timeout=self.registry_timeout
        )
        try:
            return [
                {"name": m["name"], "size": m.get("size"), "modified_at": m.get("modified_at")}
                for m in data["models"]
            ]
        except (KeyError, TypeError) as exc:
            raise self._envelope_error("missing 'models' list") from exc

    async def ensure_model(self, model: str) -> None:
        """Pull *model* if the registry does not have it. Failures are only logged."""
        try:
            names = {m["name"] for m in await self.list_models()}
            if model in names or f"{model}:latest" in names:
                return
            logger.warning("Model %s not found in Ollama, pulling it", model)
            await self._request_json(
                f"{self.base_url}/api/pull",
                payload={"name": model, "stream": False},
                timeout=self.pull_timeout,
            )
            logger.info("Pulled Ollama model %s", model)
        except ProviderTransportError as exc:
            logger.warning("Could not check Ollama models: %s", exc)

    async def generate(self, request: CompletionRequest) -> str:
        await self.ensure_model(request.model)
        prompt = request.as_prompt()
        logger.info("POST %s/api/generate  model=%s  prompt_len=%d", self.base_url, request.model, len(prompt))
        data = await self._request_json(
            f"{self.base_url}/api/generate",
            payload={"model": request.model, "prompt": prompt, "stream": False},
        )
        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise self._envelope_error("missing 'response'")
        return strip_code_fence(text)


class ChatCompletionsClient(ProviderClient):
    """Any OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        provider: Provider,
        url: str,
        *,
        timeout: float,
        max_tokens: int,
        temperature: float,
        extra_headers: dict[str, str] | None = None,
    ):
        super().__init__(provider, timeout=timeout)
        self.url = url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.extra_headers = extra_headers or {}

    async def generate(self, request: CompletionRequest) -> str:
        messages = request.as_messages()
        payload = {
            "model": request.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {"Content-Type": "application/json", **self.extra_headers}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"

        logger.info(
            "POST %s  model=%s  messages=%d  total_len=%d",
            self.url, request.model, len(messages), sum(len(m["content"]) for m in messages),
        )
        data = await self._request_json(self.url, payload=payload, headers=headers)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise self._envelope_error("missing choices[0].message.content") from exc
        if not isinstance(content, str):
            raise self._envelope_error("message content is not text")
        return strip_code_fence(content)


class QwenClient(ProviderClient):
    """Alibaba DashScope text-generation API."""

    def __init__(self, url: str, *, timeout: float, max_tokens: int, temperature: float):
        super().__init__(Provider.qwen, timeout=timeout)
        self.url = url
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def generate(self, request: CompletionRequest) -> str:
        if request.messages:
            model_input: dict[str, Any] = {"messages": request.as_messages()}
        else:
            model_input = {"prompt": request.prompt or ""}
        payload = {
            "model": request.model,
            "input": model_input,
            "parameters": {"max_tokens": self.max_tokens, "temperature": self.temperature},
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {request.api_key}",
        }
        logger.info("POST %s  model=%s", self.url, request.model)
        data = await self._request_json(self.url, payload=payload, headers=headers)
        try:
            text = data["output"]["text"]
        except (KeyError, TypeError) as exc:
            raise self._envelope_error("missing output.text") from exc
        if not isinstance(text, str):
            raise self._envelope_error("output.text is not text")
        return strip_code_fence(text)


def build_provider_clients(cfg: Settings) -> dict[Provider, ProviderClient]:
    """One client per provider, configured from settings."""

    def chat(provider: Provider, url: str, timeout: float, **kwargs: Any) -> ChatCompletionsClient:
        return ChatCompletionsClient(
            provider,
            url,
            timeout=timeout,
            max_tokens=cfg.llm_max_tokens,
            temperature=cfg.llm_temperature,
            **kwargs,
        )

    cloud = cfg.cloud_timeout_seconds
    return {
        Provider.ollama: OllamaClient(
            cfg.ollama_url,
            timeout=cfg.local_timeout_seconds,
            registry_timeout=cfg.model_registry_timeout_seconds,
            pull_timeout=cfg.model_pull_timeout_seconds,
        ),
        Provider.openai: chat(Provider.openai, cfg.openai_url, cloud),
        Provider.groq: chat(Provider.groq, cfg.groq_url, cloud),
        Provider.deepseek: chat(Provider.deepseek, cfg.deepseek_url, cloud),
        Provider.qwen: QwenClient(
            cfg.qwen_url,
            timeout=cloud,
            max_tokens=cfg.llm_max_tokens,
            temperature=cfg.llm_temperature,
        ),
        Provider.openrouter: chat(
            Provider.openrouter,
            cfg.openrouter_url,
            cloud,
            extra_headers={
                "HTTP-Referer": cfg.openrouter_referer,
                "X-Title": cfg.openrouter_title,
            },
        ),
        Provider.lmstudio: chat(Provider.lmstudio, cfg.lmstudio_url, cfg.lmstudio_timeout_seconds),
    }
