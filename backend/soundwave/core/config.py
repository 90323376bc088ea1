from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_BACKENDS = ("sqlite+", "postgresql+")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SOUNDWAVE_", extra="allow")

    environment: str = "development"
    log_level: str = "INFO"
    database_dsn: str = "sqlite+aiosqlite:///./soundwave.db"
    sql_echo: bool = False
    allow_origins: List[str] = ["*"]
    service_token: str = ""
    guest_user_id: str = "guest"
    discover_limit: int = 20
    recent_limit: int = 20
    completed_play_seconds: int = 30

    @field_validator("database_dsn", mode="before")
    @classmethod
    def _async_driver(cls, v: str) -> str:
        # Hosting providers hand out plain postgres:// URLs.
        for prefix in ("postgres://", "postgresql://"):
            if v.startswith(prefix):
                return "postgresql+asyncpg://" + v[len(prefix):]
        if v.startswith("sqlite://"):
            return "sqlite+aiosqlite://" + v[len("sqlite://"):]
        if not v.startswith(SUPPORTED_BACKENDS):
            raise ValueError(f"unsupported database backend in {v.split('://', 1)[0]!r}; use sqlite or postgresql")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.database_dsn.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
