"""
Configuration management for the service trainer backend.

Centralizes all configuration using Pydantic settings with environment variable support.
"""

from typing import Literal, Optional
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
    llm_provider: Literal["openai", "anthropic", "google"] = Field(
        default="openai",
        description="Text generation provider: openai, anthropic, google"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model identifier for the selected provider"
    )
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (required when provider is openai)"
    )
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key (required when provider is anthropic)"
    )
    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key (required when provider is google)"
    )
    generation_timeout_seconds: int = Field(
        default=30,
        description="Timeout applied to every generative call before falling back"
    )

    # Agent sampling temperatures
    scenario_temperature: float = Field(default=0.3)
    persona_temperature: float = Field(default=0.5)
    guest_temperature: float = Field(default=0.7)
    scoring_temperature: float = Field(default=0.1)
    feedback_temperature: float = Field(default=0.3)

    # SOP Retrieval
    retrieval_backend: Literal["none", "chroma"] = Field(
        default="none",
        description="SOP passage retrieval: none, chroma"
    )
    sop_store_path: str = Field(
        default="data/sop_store",
        description="Directory of the persisted Chroma SOP collection"
    )
    sop_collection: str = Field(
        default="sop_passages",
        description="Chroma collection holding SOP passages"
    )
    embedding_model: str = Field(
        default="all-MiniLM-L6-v2",
        description="Sentence-transformers model used to embed queries"
    )
    retrieval_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for one retrieval before continuing without context"
    )

    # Session Policy
    max_turns: int = Field(
        default=20,
        ge=1,
        description="Maximum trainee turns before a session is ended"
    )
    critical_error_threshold: int = Field(
        default=3,
        ge=1,
        description="Critical errors that end a session early"
    )
    natural_conclusion_ratio: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Share of required steps that allows a natural conclusion"
    )
    natural_conclusion_min_turns: int = Field(
        default=5,
        description="Minimum turns before a natural conclusion is considered"
    )
    session_timeout_minutes: int = Field(
        default=30,
        description="Idle minutes before a session expires"
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


_PROVIDER_KEYS = {
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY"),
    "google": ("gemini_api_key", "GEMINI_API_KEY"),
}


def validate_required_settings(settings: Optional[Settings] = None):
    """
    Validate that all required settings are present at runtime.

    Should be called after settings are loaded but before application starts.
    Raises ValueError if required settings are missing.
    """
    settings = settings or get_settings()

    field_name, env_name = _PROVIDER_KEYS[settings.llm_provider]
    if not getattr(settings, field_name):
        raise ValueError(
            f"{env_name} environment variable is required for provider "
            f"'{settings.llm_provider}' but not set."
        )

    return True
