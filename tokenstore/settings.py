from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    log_level: str = "INFO"

    # Backend selection
    token_backend: Literal["memory", "redis", "postgres"] = "memory"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    redis_key_prefix: str = "tok:"

    # Token policies
    default_ttl_ms: int = 15 * 60 * 1000
    sweep_every: int = 100

    # Conformance suite
    conformance_baseline_ms: int = 200

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
