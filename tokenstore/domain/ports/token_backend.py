from typing import Optional, Protocol

from tokenstore.domain.entities import TokenRecord


class TokenBackendPort(Protocol):
    """
    Persistence for token records, keyed by uid.

    Backends only hold records; validity (token match, expiry) is decided
    by the TokenStore. Driver failures must surface as BackendError.
    """

    async def put(self, record: TokenRecord, ttl_ms: Optional[int] = None) -> None:
        """
        Create or wholly replace the record for record.uid, atomically.
        ttl_ms is the lifetime relative to now, for media that expire keys
        themselves; record.expires_at stays the authoritative deadline.
        """

    async def get(self, uid: str) -> Optional[TokenRecord]:
        """Return the record for uid, or None."""

    async def delete(self, uid: str) -> None:
        """Remove the record for uid; no-op when absent."""

    async def clear(self) -> None:
        """Remove every record."""

    async def count(self) -> int:
        """Number of uids currently holding a record."""
