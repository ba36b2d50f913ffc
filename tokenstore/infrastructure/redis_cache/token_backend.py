from __future__ import annotations

import logging
import re
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from tokenstore.domain.entities import TokenRecord
from tokenstore.domain.errors import BackendError
from tokenstore.domain.ports.token_backend import TokenBackendPort
from tokenstore.domain.services import wall_clock_ms

logger = logging.getLogger(__name__)

_SCAN_BATCH = 500
_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def _escape_glob(text: str) -> str:
    """Escape characters MATCH treats as a pattern."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisTokenBackend(TokenBackendPort):
    """
    One hash per uid at <prefix><uid> with fields token, expires_at and
    (when set) referrer.

    The key gets a relative PEXPIRE so Redis reclaims it on its own clock;
    expires_at inside the hash is what authentication checks against.
    """

    def __init__(self, redis: Redis, *, key_prefix: str = "tok:") -> None:
        self._redis = redis
        self._prefix = key_prefix
        self._match = f"{_escape_glob(key_prefix)}*"

    def _key(self, uid: str) -> str:
        return f"{self._prefix}{uid}"

    async def put(self, record: TokenRecord, ttl_ms: Optional[int] = None) -> None:
        if ttl_ms is None:
            ttl_ms = record.expires_at - wall_clock_ms()
        key = self._key(record.uid)
        mapping = {"token": record.token, "expires_at": str(record.expires_at)}
        if record.referrer is not None:
            mapping["referrer"] = record.referrer
        # MULTI/EXEC: readers see the old hash or the new one, never a mix
        pipe = self._redis.pipeline(transaction=True)
        pipe.delete(key)
        pipe.hset(key, mapping=mapping)
        # a non-positive ttl deletes the key right away
        pipe.pexpire(key, ttl_ms)
        try:
            await pipe.execute()
        except RedisError as exc:
            logger.error("redis put failed", extra={"error": str(exc)})
            raise BackendError("failed to store token") from exc

    async def get(self, uid: str) -> Optional[TokenRecord]:
        try:
            stored = await self._redis.hgetall(self._key(uid))
        except RedisError as exc:
            logger.error("redis get failed", extra={"error": str(exc)})
            raise BackendError("failed to read token") from exc
        if not stored or "token" not in stored or "expires_at" not in stored:
            return None
        return TokenRecord(
            uid=uid,
            token=stored["token"],
            expires_at=int(stored["expires_at"]),
            referrer=stored.get("referrer"),
        )

    async def delete(self, uid: str) -> None:
        try:
            await self._redis.delete(self._key(uid))
        except RedisError as exc:
            raise BackendError("failed to invalidate user") from exc

    async def _scan_keys(self) -> set[str]:
        # SCAN may hand out a key more than once while the keyspace rehashes
        keys: set[str] = set()
        async for key in self._redis.scan_iter(match=self._match, count=_SCAN_BATCH):
            keys.add(key)
        return keys

    async def clear(self) -> None:
        try:
            keys = list(await self._scan_keys())
            for i in range(0, len(keys), _SCAN_BATCH):
                await self._redis.delete(*keys[i : i + _SCAN_BATCH])
        except RedisError as exc:
            raise BackendError("failed to clear tokens") from exc

    async def count(self) -> int:
        try:
            return len(await self._scan_keys())
        except RedisError as exc:
            raise BackendError("failed to count tokens") from exc
