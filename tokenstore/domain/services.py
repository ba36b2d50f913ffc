from __future__ import annotations

import hmac
import math
import secrets
import time
from datetime import timedelta
from typing import Any, Callable

from tokenstore.domain.errors import ValidationError

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def generate_token(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)


def secure_compare(a: str, b: str) -> bool:
    """
    Constant-time comparison for secrets.
    Accepts strings; falls back to bytes if needed.
    """
    try:
        # hmac.compare_digest supports str only when both are ASCII
        return hmac.compare_digest(a, b)
    except TypeError:
        return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def require_text(field: str, value: Any) -> str:
    if value is None:
        raise ValidationError(field)
    if not isinstance(value, str):
        raise ValidationError(field, f"{field} must be a string")
    if not value:
        raise ValidationError(field, f"{field} cannot be empty")
    return value


def require_optional_text(field: str, value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise ValidationError(field, f"{field} must be a string or None")


def ttl_to_ms(value: Any) -> int:
    """
    Normalize a time-to-live to whole milliseconds.
    Numbers are milliseconds, timedeltas are converted. Zero and negative
    values are accepted; they produce an already expired record.
    """
    if value is None or value == "":
        raise ValidationError("ttl")
    if isinstance(value, bool):
        raise ValidationError("ttl", "ttl must be a number of milliseconds")
    if isinstance(value, timedelta):
        return int(value.total_seconds() * 1000)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationError("ttl", "ttl must be finite")
        return int(value)
    raise ValidationError("ttl", "ttl must be a number of milliseconds")
