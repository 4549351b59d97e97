"""Application configuration."""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Development mode: when False, enforces strict checks and hides error details
    dev_mode: bool = True

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Rate Limiting (per client per minute)
    rate_limit_enabled: bool = True
    rate_limit_ai: int = 10
    rate_limit_models: int = 5

    # Provider credentials, read from <PROVIDER>_API_KEY
    openai_api_key: str = ""
    groq_api_key: str = ""
    deepseek_api_key: str = ""
    qwen_api_key: str = ""
    openrouter_api_key: str = ""
    lmstudio_api_key: str = ""

    # Provider endpoints
    ollama_url: str = "http://localhost:11434"
    lmstudio_url: str = "http://localhost:1234/v1/chat/completions"
    openai_url: str = "https://api.openai.com/v1/chat/completions"
    groq_url: str = "https://api.groq.com/openai/v1/chat/completions"
    deepseek_url: str = "https://api.deepseek.com/v1/chat/completions"
    qwen_url: str = (
        "https://dashscope.aliyuncs.com/api/v1/services/aigc/text-generation/generation"
    )
    openrouter_url: str = "https://openrouter.ai/api/v1/chat/completions"
    openrouter_referer: str = "https://ai-grammar-web.com"
    openrouter_title: str = "AI Grammar Web"

    # Timeouts (seconds)
    cloud_timeout_seconds: float = 30.0
    local_timeout_seconds: float = 180.0
    lmstudio_timeout_seconds: float = 90.0
    model_registry_timeout_seconds: float = 5.0
    model_pull_timeout_seconds: float = 300.0

    # LLM Generation
    llm_max_tokens: int = 2000
    llm_temperature: float = 0.7

    # Retries (1 attempt means no retries)
    provider_max_attempts: int = 1

    # Deployment policy
    hosted_deployment: bool = False
    substitution_priority: list[str] = ["groq", "openai"]
    allow_fallback_to_local: bool = False
    fallback_local_model: str = "gemma3:1b"

    # Request defaults
    default_provider: str = "ollama"
    default_model: str = "gemma3:1b"
    max_text_length: int = 50_000

    # Logging
    log_level: str = "info"

    @model_validator(mode="after")
    def _validate_production(self) -> "Settings":
        if self.provider_max_attempts < 1:
            raise ValueError("PROVIDER_MAX_ATTEMPTS must be at least 1")
        if not self.dev_mode and self.hosted_deployment and self.allow_fallback_to_local:
            raise ValueError(
                "ALLOW_FALLBACK_TO_LOCAL cannot be enabled when HOSTED_DEPLOYMENT=true "
                "and DEV_MODE=false: there is no local inference server to fall back to"
            )
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
