from __future__ import annotations

import logging
from typing import Optional

import psycopg
from psycopg_pool import AsyncConnectionPool

from tokenstore.domain.entities import TokenRecord
from tokenstore.domain.errors import BackendError
from tokenstore.domain.ports.token_backend import TokenBackendPort

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS auth_tokens (
  uid        text PRIMARY KEY,
  token      text   NOT NULL,
  expires_at bigint NOT NULL,
  referrer   text   NULL
);
CREATE INDEX IF NOT EXISTS auth_tokens_expires_at_idx ON auth_tokens (expires_at);
"""


class PgTokenBackend(TokenBackendPort):
    """
    Postgres implementation of TokenBackendPort.

    NOTE:
    - Each call borrows a connection from the pool and commits on its own.
    - The upsert is a single statement, so a replace is never half-applied.
    """

    def __init__(self, pool: AsyncConnectionPool, *, table: str = "auth_tokens"):
        self._pool = pool
        self._table = table

    async def ensure_schema(self) -> None:
        sql = SCHEMA_SQL.replace("auth_tokens", self._table)
        try:
            async with self._pool.connection() as conn:
                await conn.execute(sql)
        except psycopg.Error as exc:
            raise BackendError("failed to create token schema") from exc

    async def put(self, record: TokenRecord, ttl_ms: Optional[int] = None) -> None:
        sql = f"""
        INSERT INTO {self._table} (uid, token, expires_at, referrer)
        VALUES (%s, %s, %s, %s)
        ON CONFLICT (uid) DO UPDATE
            SET token = EXCLUDED.token,
                expires_at = EXCLUDED.expires_at,
                referrer = EXCLUDED.referrer
        """
        params = (record.uid, record.token, record.expires_at, record.referrer)
        try:
            async with self._pool.connection() as conn:
                await conn.execute(sql, params)
        except psycopg.Error as exc:
            logger.error("postgres put failed", extra={"error": str(exc)})
            raise BackendError("failed to store token") from exc

    async def get(self, uid: str) -> Optional[TokenRecord]:
        sql = f"SELECT token, expires_at, referrer FROM {self._table} WHERE uid = %s"
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, (uid,))
                    row = await cur.fetchone()
        except psycopg.Error as exc:
            logger.error("postgres get failed", extra={"error": str(exc)})
            raise BackendError("failed to read token") from exc
        if not row:
            return None
        token, expires_at, referrer = row
        return TokenRecord(
            uid=uid, token=token, expires_at=int(expires_at), referrer=referrer
        )

    async def delete(self, uid: str) -> None:
        try:
            async with self._pool.connection() as conn:
                await conn.execute(f"DELETE FROM {self._table} WHERE uid = %s", (uid,))
        except psycopg.Error as exc:
            raise BackendError("failed to invalidate user") from exc

    async def clear(self) -> None:
        try:
            async with self._pool.connection() as conn:
                await conn.execute(f"DELETE FROM {self._table}")
        except psycopg.Error as exc:
            raise BackendError("failed to clear tokens") from exc

    async def count(self) -> int:
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(f"SELECT count(*) FROM {self._table}")
                    row = await cur.fetchone()
        except psycopg.Error as exc:
            raise BackendError("failed to count tokens") from exc
        return int(row[0]) if row else 0

    async def sweep_expired(self, now_ms: int) -> int:
        try:
            async with self._pool.connection() as conn:
                cur = await conn.execute(
                    f"DELETE FROM {self._table} WHERE expires_at <= %s", (now_ms,)
                )
                return cur.rowcount
        except psycopg.Error as exc:
            raise BackendError("failed to sweep expired tokens") from exc
