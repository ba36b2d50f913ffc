from __future__ import annotations

import asyncio
from typing import Dict, Optional

from tokenstore.domain.entities import TokenRecord
from tokenstore.domain.ports.token_backend import TokenBackendPort


class InMemoryTokenBackend(TokenBackendPort):
    """
    Holds records in a dict for the lifetime of the process.

    Records are immutable, so a reader always gets either the previous or
    the new record in full.
    """

    def __init__(self) -> None:
        self._records: Dict[str, TokenRecord] = {}
        self._lock = asyncio.Lock()

    async def put(self, record: TokenRecord, ttl_ms: Optional[int] = None) -> None:
        async with self._lock:
            self._records[record.uid] = record

    async def get(self, uid: str) -> Optional[TokenRecord]:
        async with self._lock:
            return self._records.get(uid)

    async def delete(self, uid: str) -> None:
        async with self._lock:
            self._records.pop(uid, None)

    async def clear(self) -> None:
        async with self._lock:
            self._records.clear()

    async def count(self) -> int:
        async with self._lock:
            return len(self._records)

    async def sweep_expired(self, now_ms: int) -> int:
        """Drop records whose expiry has passed; returns how many were removed."""
        async with self._lock:
            expired = [
                uid for uid, rec in self._records.items() if rec.is_expired(now_ms)
            ]
            for uid in expired:
                del self._records[uid]
        return len(expired)
