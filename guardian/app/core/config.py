from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_host_list(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        items = [str(v).strip().lower() for v in raw]
        return [v for v in items if v]
    raw = str(raw).strip()
    if not raw:
        return []
    return [p.strip().lower() for p in raw.split(",") if p.strip()]


class Settings(BaseSettings):
    """Gateway settings loaded from environment variables.

    All settings can be configured via environment variables or .env file,
    prefixed with ``GUARDIAN_``.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Deployment environment: production | staging | development
    environment: str = "production"

    # Host the site is served from, used for local-environment detection
    site_host: str = ""
    site_timezone: str = "UTC"

    # Hosts considered local (exact match); any host containing ".local" is local too
    local_hosts: Annotated[list[str], NoDecode] = ["localhost", "127.0.0.1", "::1"]

    @field_validator("local_hosts", mode="before")
    @classmethod
    def decode_local_hosts(cls, v: Any) -> list[str]:
        return _parse_host_list(v)

    # Credential used when the options store has none
    api_key: str = ""
    default_provider: str = "groq"

    # Provider endpoint/model overrides (empty = registry default)
    groq_endpoint: str = ""
    groq_model: str = ""
    perplexity_endpoint: str = ""
    perplexity_model: str = ""
    huggingface_endpoint: str = ""
    huggingface_model: str = ""
    openai_endpoint: str = ""
    openai_model: str = ""

    # Upstream request parameters
    request_timeout: float = 30.0
    temperature: float = 0.7
    max_tokens: int = 800

    # Response cache
    cache_ttl: int = 3600  # 1 hour
    cache_prefix: str = "wpaig_ai_"
    cache_key_include_provider: bool = False
    cache_singleflight_enabled: bool = True

    # Free tier
    default_max_calls: int = 3

    # Redis settings (optional)
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"
    options_hash_key: str = "wpaig:options"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # Admin endpoints
    admin_token: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("request_timeout must be positive")
        return v

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("temperature must be between 0 and 2")
        return v

    @field_validator("max_tokens", "cache_ttl")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate token and TTL values are positive."""
        if v < 1:
            raise ValueError("max_tokens and cache_ttl must be at least 1")
        return v

    @field_validator("default_max_calls")
    @classmethod
    def validate_max_calls(cls, v: int) -> int:
        if v < 0:
            raise ValueError("default_max_calls must not be negative")
        return v

    @field_validator("default_provider")
    @classmethod
    def validate_default_provider(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("groq", "perplexity", "huggingface", "openai"):
            raise ValueError(f"Unsupported default_provider: {v}")
        return v

    model_config = SettingsConfigDict(
        env_prefix="GUARDIAN_", env_file=".env", extra="ignore"
    )


# Global settings instance
settings = Settings()
