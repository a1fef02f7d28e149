from functools import lru_cache
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod"),
        extra="ignore",
    )

    # Database. When unset, database.build_database_url falls back to DB_* vars
    database_url: Optional[str] = None
    storage_backend: Literal["sql", "memory"] = "sql"
    create_tables: bool = True

    # Session cookie
    session_secret: str = "dev-session-secret"  # override in production
    session_cookie: str = "job_tracker_session"
    session_max_age: int = 14 * 24 * 60 * 60
    session_https_only: bool = False

    cors_origins: List[str] = [
        "http://localhost",
        "http://localhost:5000",
        "http://127.0.0.1",
        "http://127.0.0.1:5000",
    ]

    log_format: Literal["json", "console"] = "json"
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
