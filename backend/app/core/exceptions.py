"""Dispatch and pipeline exceptions."""

from __future__ import annotations

from app.models.model_config import SUPPORTED_PROVIDERS, Provider


class DispatchError(Exception):
    """Base exception for provider dispatch failures."""

    code = "DISPATCH_ERROR"
    status_code = 500


class UnsupportedProviderError(DispatchError):
    """Raised when the requested provider is missing or unknown."""

    code = "UNSUPPORTED_PROVIDER"
    status_code = 400

    def __init__(self, provider: str | None):
        self.provider = provider
        supported = ", ".join(SUPPORTED_PROVIDERS)
        if not provider:
            message = f"Model configuration with provider is required. Supported providers: {supported}"
        else:
            message = f"Unsupported AI provider: {provider}. Supported providers: {supported}"
        super().__init__(message)


class MissingCredentialError(DispatchError):
    """Raised when a cloud provider has no resolvable API key."""

    code = "MISSING_CREDENTIAL"
    status_code = 400

    def __init__(self, provider: Provider):
        self.provider = provider.value
        self.env_key = provider.env_key
        super().__init__(
            f"{provider.label} API key is required. Please provide an API key "
            f"or configure {provider.env_key} in your environment."
        )


class ProviderTransportError(DispatchError):
    """Raised when talking to a provider fails (network, timeout, HTTP status, envelope)."""

    code = "PROVIDER_ERROR"
    status_code = 502

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        timed_out: bool = False,
        status_code: int | None = None,
    ):
        self.provider = provider
        self.cause = message
        self.timed_out = timed_out
        self.http_status = status_code
        if timed_out:
            self.code = "PROVIDER_TIMEOUT"
            self.status_code = 504
        super().__init__(f"{provider}: {message}")


class EmptyInputError(DispatchError):
    """Raised when the text or prompt is empty before any provider call."""

    code = "EMPTY_INPUT"
    status_code = 400

    def __init__(self, what: str = "text"):
        super().__init__(f"Please provide the {what} content to process")


class ResponseFormatError(Exception):
    """Raised when the assembled API payload fails its closed schema."""
