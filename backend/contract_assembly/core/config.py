from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Contract Assembly Engine"
    DATABASE_URL: str = "sqlite:///./contract_assembly.db"
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"
    LOG_LEVEL: str = "INFO"

    # Audit events that cannot be handed to the broker are kept locally.
    AUDIT_BUFFER_MAX: int = 1000
    AUDIT_FLUSH_BATCH: int = 50

    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> "Settings":
    return Settings()


settings = get_settings()
