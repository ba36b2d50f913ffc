import re
import time
from typing import Any, AsyncIterator, Optional

from tokenstore.domain.entities import TokenRecord
from tokenstore.domain.errors import BackendError
from tokenstore.infrastructure.memory.token_backend import InMemoryTokenBackend


class FakeClock:
    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class RecordingBackend(InMemoryTokenBackend):
    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple] = []
        self.sweeps: list[int] = []

    async def put(self, record: TokenRecord, ttl_ms: Optional[int] = None) -> None:
        self.calls.append(("put", record.uid))
        await super().put(record, ttl_ms)

    async def get(self, uid: str) -> Optional[TokenRecord]:
        self.calls.append(("get", uid))
        return await super().get(uid)

    async def delete(self, uid: str) -> None:
        self.calls.append(("delete", uid))
        await super().delete(uid)

    async def sweep_expired(self, now_ms: int) -> int:
        self.sweeps.append(now_ms)
        return await super().sweep_expired(now_ms)


class FakeErroredBackend:
    """Every operation fails the way an unreachable store would."""

    async def put(self, record: TokenRecord, ttl_ms: Optional[int] = None) -> None:
        raise BackendError("Redis down")

    async def get(self, uid: str) -> Optional[TokenRecord]:
        raise BackendError("Redis down")

    async def delete(self, uid: str) -> None:
        raise BackendError("Redis down")

    async def clear(self) -> None:
        raise BackendError("Redis down")

    async def count(self) -> int:
        raise BackendError("Redis down")


class FakeRedis:
    """
    Just enough of redis.asyncio.Redis for RedisTokenBackend. Key expiry
    runs on this process's wall clock, standing in for the server's.
    """

    def __init__(self, scan_repeats: int = 1) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.deadlines: dict[str, float] = {}
        self.scan_repeats = scan_repeats
        self.scan_patterns: list[str] = []

    def _now_ms(self) -> float:
        return time.time() * 1000

    def _evict(self) -> None:
        now = self._now_ms()
        for key, deadline in list(self.deadlines.items()):
            if deadline <= now:
                self.hashes.pop(key, None)
                self.deadlines.pop(key, None)

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)

    def _apply(self, op: str, key: str, arg: Any = None) -> None:
        if op == "delete":
            self.hashes.pop(key, None)
            self.deadlines.pop(key, None)
        elif op == "hset":
            self.hashes.setdefault(key, {}).update(arg)
        elif op == "pexpire":
            if arg <= 0:
                self._apply("delete", key)
            else:
                self.deadlines[key] = self._now_ms() + arg
        elif op == "pexpireat":
            if arg <= self._now_ms():
                self._apply("delete", key)
            else:
                self.deadlines[key] = arg

    async def hgetall(self, key: str) -> dict[str, str]:
        self._evict()
        return dict(self.hashes.get(key, {}))

    async def delete(self, *keys: str) -> int:
        removed = sum(1 for k in keys if k in self.hashes)
        for k in keys:
            self._apply("delete", k)
        return removed

    async def scan_iter(
        self, match: Optional[str] = None, count: Optional[int] = None
    ) -> AsyncIterator[str]:
        self._evict()
        self.scan_patterns.append(match or "*")
        # only trailing-* patterns with backslash escapes are needed here
        prefix = re.sub(r"\\(.)", r"\1", (match or "*")[:-1])
        for _ in range(self.scan_repeats):
            for key in list(self.hashes):
                if key.startswith(prefix):
                    yield key


class FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._ops: list[tuple[str, str, Any]] = []

    def delete(self, key: str) -> None:
        self._ops.append(("delete", key, None))

    def hset(self, key: str, mapping: dict[str, str]) -> None:
        self._ops.append(("hset", key, mapping))

    def pexpire(self, key: str, ms: int) -> None:
        self._ops.append(("pexpire", key, ms))

    def pexpireat(self, key: str, at_ms: int) -> None:
        self._ops.append(("pexpireat", key, at_ms))

    async def execute(self) -> list[Any]:
        for op, key, arg in self._ops:
            self._redis._apply(op, key, arg)
        self._ops = []
        return []
