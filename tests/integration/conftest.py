# tests/integration/conftest.py
import os

import pytest
import pytest_asyncio
from redis.asyncio import Redis
from redis.exceptions import RedisError


def redis_url() -> str:
    return os.environ.get("REDIS_URL", "redis://redis:6379/0")


async def connect_redis_or_skip() -> Redis:
    r = Redis.from_url(
        redis_url(),
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=1,
    )
    try:
        await r.ping()
    except (RedisError, OSError) as exc:
        await r.aclose()
        pytest.skip(f"redis not reachable: {exc}")
    return r


@pytest_asyncio.fixture
async def redis_client():
    r = await connect_redis_or_skip()
    try:
        yield r
    finally:
        await r.aclose()
