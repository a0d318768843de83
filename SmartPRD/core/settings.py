"""Конфигурация SmartPRD через переменные окружения (pydantic-settings).

Читает `.env` в рабочей директории и переменные с префиксом `SP_`.
Все поля имеют значения по умолчанию для локальной разработки.
"""
from __future__ import annotations

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic-класс настроек сервиса."""
    # Read from .env in the working directory, use SP_* prefix for vars
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_prefix="SP_",
        case_sensitive=False,
    )

    # Database connection string (SP_DATABASE_URL)
    database_url: str = "sqlite:///./smartprd.db"

    # Logging configuration
    log_level: str = "INFO"   # SP_LOG_LEVEL
    log_json: bool = False    # SP_LOG_JSON
    request_log: bool = True  # SP_REQUEST_LOG
    request_id_header: str = "X-Request-ID"

    # OpenAI-compatible text generation endpoint
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    default_model: str = "gpt-4o-mini"
    http_timeout: int = 60  # seconds, single attempt per call

    # Blob storage (local directory served under /blobs)
    storage_dir: str = "./blobs"
    public_base_url: str = "http://localhost:8000/blobs"
    max_upload_bytes: int = 20 * 1024 * 1024

    # Tokens issued by the hosted auth service
    jwt_secret: str = "change-me-local-development-secret-key"
    jwt_algorithms: List[str] = ["HS256"]
    jwt_audience: str = "authenticated"

    cors_origins: List[str] = ["*"]


settings = Settings()
