"""
Application configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017")
    mongodb_database: str = Field(default="hackathon_teams")

    # LLM scoring service (any OpenAI-compatible endpoint, e.g. Groq)
    llm_api_key: SecretStr = Field(default=SecretStr(""))
    llm_base_url: Optional[str] = Field(
        default="https://api.groq.com/openai/v1",
        description="Base URL of the OpenAI-compatible chat completions API",
    )
    llm_model: str = Field(default="llama-3.1-8b-instant")

    # Matcher settings
    matcher_use_llm: bool = Field(
        default=True, description="Use the LLM scorer when an API key is configured"
    )
    matcher_timeout_seconds: float = Field(
        default=5.0, description="Seconds to wait for the LLM before falling back"
    )
    matcher_top_k: int = Field(
        default=5, ge=1, le=5, description="Suggestions returned per query"
    )
    matcher_temperature: float = Field(default=0.3)
    matcher_max_tokens: int = Field(default=1024)

    @property
    def llm_enabled(self) -> bool:
        """Whether the LLM scorer can be used."""
        return self.matcher_use_llm and bool(self.llm_api_key.get_secret_value())

    # Teams
    default_team_name: str = Field(default="My Team")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
