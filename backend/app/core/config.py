"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Smart Planner Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://planner@localhost:5432/smart_planner"

    # OpenAI-compatible chat completions backend (OpenRouter by default).
    ai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AI_API_KEY", "OPENROUTER_API_KEY"),
    )
    ai_base_url: str = "https://openrouter.ai/api/v1"
    ai_model: str = "google/gemini-2.0-flash-001"
    ai_timeout_seconds: float = 45.0
    ai_app_url: str = "http://localhost:3000"
    ai_app_title: str = "Smart Planner"

    planner_timezone: str = "UTC"

    source_cache_ttl_seconds: float = 300.0
    source_max_chars: int = 2000
    source_fetch_timeout_seconds: float = 15.0

    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "smart-planner"

    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    cascade_job_hour: int = 6
    cascade_job_minute: int = 0
    # 0=Sunday..6=Saturday; the day the scheduled run regenerates the whole week.
    weekly_cascade_weekday: int = Field(default=0, ge=0, le=6)
    jobs_run_on_startup: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
