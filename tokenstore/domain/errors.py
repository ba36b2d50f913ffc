class TokenStoreError(Exception):
    """Base class for all token store errors."""

    pass


class ValidationError(TokenStoreError, ValueError):
    """A required argument is missing, empty or of the wrong type."""

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"{field} is required")


class BackendError(TokenStoreError):
    """The storage medium failed (unreachable, timed out, rejected the write)."""

    pass
