"""
Application configuration via environment variables.

Uses Pydantic BaseSettings to load and validate all config from env vars
or a .env.local file. Every setting has a sensible default for local
development so the app can start with minimal configuration.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment selector."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class StorageBackend(str, Enum):
    """Key-value backend used by the template and process stores."""

    MEMORY = "memory"
    REDIS = "redis"
    SUPABASE = "supabase"


class Settings(BaseSettings):
    """
    Central configuration for the DataVox transcription service.

    Values are loaded from environment variables first, falling back
    to a `.env.local` file in the project root. Secrets should NEVER
    be committed.
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Environment = Environment.DEVELOPMENT

    # ── AssemblyAI ───────────────────────────────────────────────
    assemblyai_api_key: str = Field(default="", description="AssemblyAI API key")
    assemblyai_base_url: str = Field(
        default="https://api.assemblyai.com", description="AssemblyAI REST base URL"
    )
    lemur_final_model: str = Field(
        default="anthropic/claude-3-5-sonnet", description="LLM used for template extraction"
    )
    http_timeout_seconds: float = Field(default=30.0, gt=0, description="Vendor HTTP timeout")
    speaker_labels: bool = Field(default=True, description="Request speaker diarization")

    # ── Storage ──────────────────────────────────────────────────
    storage_backend: StorageBackend = StorageBackend.MEMORY
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_service_key: str = Field(default="", description="Supabase service-role key")

    # ── Uploads & polling ────────────────────────────────────────
    max_upload_mb: int = Field(default=100, ge=1, le=2048, description="Max audio upload size")
    poll_interval_seconds: float = Field(default=5.0, gt=0, description="Transcript status poll interval")

    # ── Prompting ────────────────────────────────────────────────
    prompt_include_field_descriptions: bool = Field(
        default=False, description="Add field descriptions as guidance lines in prompts"
    )

    # ── API ──────────────────────────────────────────────────────
    rate_limit_per_minute: int = Field(default=120, ge=1, description="Requests per client IP per minute")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: Optional[bool] = Field(
        default=None, description="Force JSON (true) or console (false) logs; defaults to JSON in production"
    )

    # ── Derived helpers ──────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached Settings instance.

    Using lru_cache ensures we read env vars exactly once, and every
    module that calls ``get_settings()`` gets the same object.
    """
    return Settings()
