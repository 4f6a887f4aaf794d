from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache

_PROJECT_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _PROJECT_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Data Grid Core API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    database_url: str = "sqlite:///./gridcore.db"
    cors_origins: list[str] = ["http://localhost:3000"]

    # Declarative table catalog (relative to the working directory)
    tables_config_file: str = "data/tables.yaml"

    # Result cache
    result_cache_ttl_seconds: int = 300
    result_cache_max_entries: int = 1000

    # Distinct-value cache (filter dropdowns)
    distinct_values_limit: int = 1000
    distinct_values_ttl_seconds: int = 600

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 500

    # Live per-scope table sessions held by the HTTP layer
    max_table_sessions: int = 1000

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine SQL queries
    log_level_cache: str = "INFO"            # result / distinct-value caches
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance: reads .env once."""
    return Settings()
