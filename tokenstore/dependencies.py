from __future__ import annotations

from typing import Optional

from tokenstore.application.token_store import TokenStore
from tokenstore.domain.ports.token_backend import TokenBackendPort
from tokenstore.domain.services import Clock
from tokenstore.infrastructure.db.pool import close_pool, get_pool, open_pool
from tokenstore.infrastructure.db.token_backend import PgTokenBackend
from tokenstore.infrastructure.memory.token_backend import InMemoryTokenBackend
from tokenstore.infrastructure.redis_cache.pool import close_redis, get_redis
from tokenstore.infrastructure.redis_cache.token_backend import RedisTokenBackend
from tokenstore.logging import setup_logging
from tokenstore.settings import Settings, get_settings


def get_token_backend(settings: Optional[Settings] = None) -> TokenBackendPort:
    settings = settings or get_settings()
    if settings.token_backend == "redis":
        return RedisTokenBackend(get_redis(), key_prefix=settings.redis_key_prefix)
    if settings.token_backend == "postgres":
        # pool is handed out closed; create_token_store opens it
        return PgTokenBackend(get_pool())
    return InMemoryTokenBackend()


def build_token_store(
    settings: Optional[Settings] = None, *, clock: Optional[Clock] = None
) -> TokenStore:
    settings = settings or get_settings()
    return TokenStore(
        get_token_backend(settings),
        clock=clock,
        sweep_every=settings.sweep_every,
    )


async def create_token_store(
    settings: Optional[Settings] = None, *, clock: Optional[Clock] = None
) -> TokenStore:
    """
    Process startup: configure logging, open the configured medium and
    return a ready store. Pair with close_token_store() on shutdown.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    store = build_token_store(settings, clock=clock)
    if isinstance(store.backend, PgTokenBackend):
        await open_pool()
        await store.backend.ensure_schema()
    return store


async def close_token_store() -> None:
    await close_redis()
    await close_pool()
