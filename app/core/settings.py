"""Configuration and environment settings for the statement ingest service."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the statement ingest service."""

    groq_api_key: str = ""
    enrichment_agent: str = "groq"
    enrichment_model: str = "llama-3.3-70b-versatile"
    enrichment_temperature: float = 0.2
    enrichment_max_completion_tokens: int = 2048
    enrichment_batch_size: int = 10
    enrichment_max_workers: int = 4
    dedup_chunk_size: int = 500
    pipeline_max_workers: int = 1
    statement_stale_after_seconds: int = 900
    database_url: str = "sqlite:///statements.db"
    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_region: str | None = None
    s3_bucket: str = "statements"
    log_file: str = "logs/etl.log"
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> "Settings":
    """Return the cached application settings."""
    return Settings()
