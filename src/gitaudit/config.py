from __future__ import annotations

from typing import Dict, Literal

from pydantic import Field, SecretStr, confloat, conint, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_MAX_BATCH_SIZE, DEFAULT_TIME_WINDOW_HOURS, MAX_TIME_WINDOW_HOURS

LLMProviderType = Literal["openrouter", "openai", "anthropic"]


class GitHubSettings(BaseSettings):
    """GitHub access settings from GITAUDIT_* environment variables (and .env)."""

    model_config = SettingsConfigDict(
        env_prefix="GITAUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        frozen=True,
        extra="ignore",
        protected_namespaces=(),  # Allow fields starting with 'model_'
    )

    github_token: SecretStr = Field(default="", description="GitHub token used for API calls")
    github_api_url: str = Field(default="https://api.github.com")
    github_timeout_seconds: confloat(gt=0) = Field(default=30.0)


class GitAuditConfig(GitHubSettings):
    """Full run configuration: GitHub access plus LLM, batching and filtering."""

    # LLM provider selection + keys
    llm_provider: LLMProviderType = Field(
        default="openrouter",
        description="LLM provider: openrouter, openai, anthropic",
    )
    openrouter_api_key: SecretStr = Field(default="", description="OpenRouter API key")
    openai_api_key: SecretStr = Field(default="", description="OpenAI API key")
    anthropic_api_key: SecretStr = Field(default="", description="Anthropic API key")

    # Per-tier model overrides; empty means the provider's default for the tier.
    model_very_fast: str = Field(default="")
    model_fast: str = Field(default="")
    model_balanced: str = Field(default="")
    model_high_reasoning: str = Field(default="")
    model_max_quality: str = Field(default="")

    llm_timeout_seconds: conint(ge=1) = Field(default=120)
    llm_max_retries: conint(ge=1) = Field(default=2)

    # Batching
    time_window_hours: confloat(gt=0, le=MAX_TIME_WINDOW_HOURS, allow_inf_nan=False) = Field(
        default=DEFAULT_TIME_WINDOW_HOURS
    )
    max_batch_size: conint(ge=1) = Field(default=DEFAULT_MAX_BATCH_SIZE)

    # Analysis
    detailed: bool = Field(default=True, description="Run Pass-2 detailed analysis")
    max_concurrency: conint(ge=1) = Field(default=1)

    # Commit filtering
    include_merge_commits: bool = Field(default=False)
    include_bot_commits: bool = Field(default=False)

    @field_validator("llm_provider", mode="before")
    @classmethod
    def _normalize_lowercase(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _validate_provider_keys(self) -> "GitAuditConfig":
        """The key for the selected provider must be present."""
        provider = self.llm_provider
        if not self.provider_api_key():
            raise ValueError(f"{provider}_api_key is required when llm_provider={provider}")
        return self

    def provider_api_key(self) -> str:
        if self.llm_provider == "openrouter":
            return self.openrouter_api_key.get_secret_value()
        if self.llm_provider == "openai":
            return self.openai_api_key.get_secret_value()
        if self.llm_provider == "anthropic":
            return self.anthropic_api_key.get_secret_value()
        return ""

    def model_overrides(self) -> Dict[str, str]:
        overrides = {
            "very_fast": self.model_very_fast,
            "fast": self.model_fast,
            "balanced": self.model_balanced,
            "high_reasoning": self.model_high_reasoning,
            "max_quality": self.model_max_quality,
        }
        return {tier: model.strip() for tier, model in overrides.items() if model.strip()}

    def to_batch_options(self) -> Dict[str, float]:
        return {
            "time_window_hours": self.time_window_hours,
            "max_batch_size": self.max_batch_size,
        }
