"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Study Planner Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://studyplanner@localhost:5432/studyplanner"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "studyplanner"
    # Any OpenAI-compatible chat completions endpoint; Gemini by default.
    oracle_api_key: str | None = None
    oracle_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    oracle_model: str = "gemini-2.5-flash"
    oracle_temperature: float = 0.5
    oracle_max_output_tokens: int = 8192
    oracle_timeout_seconds: float = 60.0


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
