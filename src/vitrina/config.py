"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with the VITRINA_ prefix.
Two databases are configured separately: the document store (users and chat
messages) and the relational product sink. Both default to local SQLite
files so the app runs with no external services.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via VITRINA_* env vars."""

    # Document store: users + chat messages
    database_url: str = "sqlite+aiosqlite:///./vitrina.db"

    # Relational sink for product rows
    products_database_url: str = "sqlite+aiosqlite:///./ecommerce.sqlite"

    # Sessions. Empty redis_url keeps sessions in process memory.
    redis_url: str = ""
    session_cookie_name: str = "vitrina_sid"
    session_max_age_seconds: int = 3600

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8080
    mode: str = "fork"  # "fork" = one process, "cluster" = one worker per CPU
    workers: int = 0  # 0 = os.cpu_count() in cluster mode

    model_config = {"env_prefix": "VITRINA_"}

    @field_validator("mode")
    @classmethod
    def normalize_mode(cls, value: str) -> str:
        mode = value.strip().lower()
        if mode not in ("fork", "cluster"):
            raise ValueError("VITRINA_MODE must be 'fork' or 'cluster'")
        return mode


# Singleton — import this everywhere
settings = Settings()
