"""
Configuration management for MathSage tutor backend.

Centralizes all configuration using Pydantic settings with environment variable support.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    # LLM Configuration
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (used directly or as Secrets Manager fallback)"
    )
    openai_secret_name: str = Field(
        default="openai/mathsage",
        description="Secrets Manager secret holding the OpenAI API key"
    )
    use_secrets_manager: bool = Field(
        default=False,
        description="Resolve the OpenAI key from AWS Secrets Manager"
    )
    llm_model: str = Field(
        default="gpt-4",
        description="OpenAI chat model used for tutoring and state detection"
    )
    tutor_temperature: float = Field(
        default=0.7,
        description="Sampling temperature for tutor replies"
    )
    classifier_temperature: float = Field(
        default=0.3,
        description="Sampling temperature for state detection"
    )
    max_tokens: int = Field(
        default=1000,
        description="Max completion tokens for tutor replies"
    )
    classifier_max_tokens: int = Field(
        default=500,
        description="Max completion tokens for state detection"
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout applied to each completion call"
    )
    llm_max_retries: int = Field(
        default=3,
        description="Attempts per completion call on rate-limit/timeout"
    )
    use_llm_state_detection: bool = Field(
        default=True,
        description="Use the LLM for state detection (falls back to heuristics on failure)"
    )
    feedback_temperature: float = Field(
        default=0.3,
        description="Sampling temperature for step-by-step feedback analysis"
    )
    feedback_max_tokens: int = Field(
        default=1000,
        description="Max completion tokens for feedback analysis"
    )

    # Pipeline traces
    trace_max_conversations: int = Field(
        default=500,
        description="Conversations kept in the in-memory trace store"
    )
    trace_max_logs_per_conversation: int = Field(
        default=200,
        description="Trace events kept per conversation"
    )

    # Secret cache
    secret_cache_ttl_seconds: int = Field(
        default=300,
        description="How long a fetched secret stays cached"
    )

    # Application Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # AWS Configuration (for Secrets Manager)
    aws_region: str = Field(
        default="us-east-1",
        description="AWS region for Secrets Manager"
    )
    # AWS credentials are auto-detected from ~/.aws/credentials or environment

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    Returns:
        Settings: Application settings
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None


def validate_required_settings():
    """
    Validate that all required settings are present at runtime.

    Should be called after settings are loaded but before application starts.
    Raises ValueError if required settings are missing.
    """
    settings = get_settings()

    if not settings.use_secrets_manager and not settings.openai_api_key:
        raise ValueError(
            "OPENAI_API_KEY environment variable is required but not set. "
            "Set it, or enable USE_SECRETS_MANAGER with OPENAI_SECRET_NAME."
        )

    if settings.use_secrets_manager and not settings.openai_secret_name:
        raise ValueError("OPENAI_SECRET_NAME is required when USE_SECRETS_MANAGER is enabled")

    return True
