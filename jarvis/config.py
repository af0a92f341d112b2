"""
Application configuration loaded from environment variables.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: SecretStr | None = Field(default=None, alias="OPENAI_API_KEY")
    llm_model_name: str = Field(default="gpt-3.5-turbo", alias="LLM_MODEL_NAME")
    llm_max_tokens: int = Field(default=1000, alias="LLM_MAX_TOKENS")
    embedding_model_name: str = Field(default="text-embedding-3-small", alias="EMBEDDING_MODEL_NAME")
    embed_batch_size: int = Field(default=512, alias="EMBED_BATCH_SIZE")

    vector_store_backend: str = Field(default="memory", alias="VECTOR_STORE_BACKEND")

    chunk_size_chars: int = Field(default=1000, alias="CHUNK_SIZE_CHARS")

    default_query_limit: int = Field(default=5, alias="DEFAULT_QUERY_LIMIT")
    action_query_limit: int = Field(default=7, alias="ACTION_QUERY_LIMIT")
    history_limit: int = Field(default=20, alias="HISTORY_LIMIT")

    memory_seed_text: str = Field(
        default="Hello, I am Jarvis. How can I assist you today?",
        alias="MEMORY_SEED_TEXT",
    )
    knowledge_seed_text: str = Field(default="Initial knowledge store entry", alias="KNOWLEDGE_SEED_TEXT")

    assistant_timezone: str = Field(default="America/Chicago", alias="ASSISTANT_TIMEZONE")

    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")


settings = Settings()


def setup_logging() -> logging.Logger:
    """
    Configure base logging for the app.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    )
    return logging.getLogger("jarvis")


def public_settings() -> Dict[str, Any]:
    """
    Return settings without secrets for safe logging/inspection.
    """
    return settings.model_dump(
        exclude={"openai_api_key"},
        exclude_none=True,
    )


__all__ = ["Settings", "settings", "setup_logging", "public_settings"]
