from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Inventory Agent"
    environment: str = "development"
    log_config_path: Optional[Path] = None
    log_level: str = "INFO"
    log_dir: Path = Path("backend/logs")
    enable_file_logging: bool = True
    enable_json_logs: bool = True
    cors_allow_origins: List[str] = ["*"]

    # OpenAI
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "LLM_API_KEY"),
    )
    openai_base_url: Optional[str] = None
    openai_chat_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-3-small"

    # Agent configuration
    agent_temperature: float = 0.0  # tool selection must be reproducible
    direct_answer_temperature: float = 0.3
    agent_max_steps: int = 15  # reasoning round-trips per invocation
    item_lookup_default_n: int = 10
    direct_answer_k: int = 3

    # Rate-limit backoff
    backoff_max_retries: int = 3
    backoff_base_delay_ms: int = 1000
    backoff_max_delay_ms: int = 30000

    # Chroma
    chroma_server_host: Optional[str] = None
    chroma_server_port: Optional[int] = None
    chroma_server_ssl: bool = False
    chroma_server_api_key: Optional[str] = None
    chroma_persist_directory: Optional[Path] = Path("backend/storage/chromadb")
    chroma_collection: str = "items"

    # Conversation checkpoints
    checkpoint_backend: str = "memory"  # "memory" | "redis"
    redis_url: str = "redis://localhost:6379/0"
    checkpoint_ttl_seconds: Optional[int] = 60 * 60 * 24 * 7  # 7 days

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
