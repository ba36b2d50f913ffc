from dataclasses import dataclass
from typing import Iterator, Optional

from tokenstore.domain.services import secure_compare


@dataclass(frozen=True)
class TokenRecord:
    uid: str
    token: str
    expires_at: int  # epoch milliseconds
    referrer: Optional[str] = None

    def is_expired(self, now_ms: int) -> bool:
        return now_ms >= self.expires_at

    def matches(self, token: str, uid: str, now_ms: int) -> bool:
        """True while unexpired and both token and uid are exactly equal."""
        if self.is_expired(now_ms):
            return False
        if self.uid != uid:
            return False
        return secure_compare(self.token, token)


@dataclass(frozen=True)
class AuthResult:
    valid: bool
    referrer: Optional[str] = None

    @classmethod
    def granted(cls, record: TokenRecord) -> "AuthResult":
        return cls(valid=True, referrer=record.referrer or "")

    @classmethod
    def denied(cls) -> "AuthResult":
        return cls(valid=False, referrer=None)

    def __bool__(self) -> bool:
        return self.valid

    def __iter__(self) -> Iterator[object]:
        # allows: valid, referrer = await store.authenticate(...)
        yield self.valid
        yield self.referrer
