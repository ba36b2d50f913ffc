from __future__ import annotations

import logging
from typing import Any, Awaitable, Optional

from tokenstore.domain.entities import AuthResult, TokenRecord
from tokenstore.domain.ports.token_backend import TokenBackendPort
from tokenstore.domain.services import (
    Clock,
    require_optional_text,
    require_text,
    ttl_to_ms,
    wall_clock_ms,
)

logger = logging.getLogger(__name__)


class TokenStore:
    """
    Issues and validates single-active tokens bound to a uid.

    Every public method validates its arguments when called and raises
    ValidationError right away; only then is an awaitable handed back.
    Awaiting it either returns the result or raises BackendError.

    Usage:
        await store.store_or_update(token, "alice@example.com", 60_000, "/inbox")
        valid, referrer = await store.authenticate(token, "alice@example.com")
    """

    def __init__(
        self,
        backend: TokenBackendPort,
        *,
        clock: Optional[Clock] = None,
        sweep_every: int = 0,
    ) -> None:
        self._backend = backend
        self._clock = clock or wall_clock_ms
        self._sweep_every = sweep_every
        self._writes = 0

    @property
    def backend(self) -> TokenBackendPort:
        return self._backend

    def store_or_update(
        self,
        token: Optional[str] = None,
        uid: Optional[str] = None,
        ttl: Any = None,
        referrer: Optional[str] = None,
    ) -> Awaitable[None]:
        # omitted arguments default to None so they fail validation, not the call
        token = require_text("token", token)
        uid = require_text("uid", uid)
        ttl_ms = ttl_to_ms(ttl)
        referrer = require_optional_text("referrer", referrer)
        record = TokenRecord(
            uid=uid,
            token=token,
            expires_at=self._clock() + ttl_ms,
            referrer=referrer,
        )
        return self._store(record, ttl_ms)

    def authenticate(
        self, token: Optional[str] = None, uid: Optional[str] = None
    ) -> Awaitable[AuthResult]:
        token = require_text("token", token)
        uid = require_text("uid", uid)
        return self._authenticate(token, uid)

    def invalidate_user(self, uid: Optional[str] = None) -> Awaitable[None]:
        uid = require_text("uid", uid)
        return self._invalidate(uid)

    def clear(self) -> Awaitable[None]:
        return self._clear()

    def length(self) -> Awaitable[int]:
        return self._backend.count()

    async def _store(self, record: TokenRecord, ttl_ms: int) -> None:
        await self._backend.put(record, ttl_ms)
        logger.debug("token stored", extra={"uid": record.uid, "ttl_ms": ttl_ms})
        await self._maybe_sweep()

    async def _authenticate(self, token: str, uid: str) -> AuthResult:
        record = await self._backend.get(uid)
        if record is None:
            logger.debug("authentication denied: no record", extra={"uid": uid})
            return AuthResult.denied()
        if not record.matches(token, uid, self._clock()):
            logger.debug(
                "authentication denied: token mismatch or expired",
                extra={"uid": uid},
            )
            return AuthResult.denied()
        return AuthResult.granted(record)

    async def _invalidate(self, uid: str) -> None:
        await self._backend.delete(uid)
        logger.debug("user invalidated", extra={"uid": uid})

    async def _clear(self) -> None:
        await self._backend.clear()
        self._writes = 0
        logger.info("token store cleared")

    async def _maybe_sweep(self) -> None:
        if self._sweep_every <= 0:
            return
        sweep = getattr(self._backend, "sweep_expired", None)
        if sweep is None:
            return
        self._writes += 1
        if self._writes % self._sweep_every:
            return
        removed = await sweep(self._clock())
        if removed:
            logger.info("expired tokens swept", extra={"removed": removed})
