"""
Library settings loaded from the environment (prefix ``SQLM_``).

Only ``open_from_settings`` and the statement-timeout helper read these;
``open_pool`` and ``mysql_open`` take their knobs as arguments.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SQLM_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Full SQLAlchemy URL, e.g. mysql+pymysql://user:pw@host:3306/db
    DATABASE_URL: str | None = None

    POOL_MAX_CONN: int = 25
    POOL_MAX_LIFETIME_SEC: float = 300.0
    PING_TIMEOUT_SEC: float = 5.0

    # Upper bound applied to every statement (Postgres/MySQL only). None = off.
    STATEMENT_TIMEOUT_SEC: float | None = None

    # Log every statement and its arguments at DEBUG.
    LOG_SQL: bool = False


settings = Settings()
