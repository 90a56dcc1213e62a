"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "StudyMentor Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./studymentor.db"
    db_auto_create: bool = False
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "studymentor"
    opik_workspace: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    llm_max_attempts: int = 3
    llm_retry_base_delay_s: float = 1.0
    fallback_max_hours: float = 1.5
    exam_mode_threshold_days: int = 10
    missed_day_factor: float = 0.7


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
