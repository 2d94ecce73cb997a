"""
Error taxonomy shared by every engine component.

Each error carries an enumerated ``kind`` and a short ``reason`` code. The
boundary layer switches on ``kind``; message text is for humans only.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    STORE = "store"


class SocialGraphError(Exception):
    """Base class for social graph engine errors."""

    kind: ErrorKind = ErrorKind.VALIDATION
    reason: str = "unknown"

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class ValidationError(SocialGraphError):
    kind = ErrorKind.VALIDATION
    reason = "invalid input"


class NotFound(SocialGraphError):
    kind = ErrorKind.NOT_FOUND
    reason = "not found"


class NotFoundOrUnauthorized(NotFound):
    """The target is missing, deleted, or owned by someone else."""

    reason = "not found or unauthorized"


class Forbidden(SocialGraphError):
    kind = ErrorKind.FORBIDDEN
    reason = "forbidden"


class Conflict(SocialGraphError):
    kind = ErrorKind.CONFLICT
    reason = "conflict"


class StoreError(SocialGraphError):
    """Wraps an underlying storage fault. Never retried."""

    kind = ErrorKind.STORE
    reason = "store failure"

    def __init__(
        self,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__()
        self.operation = operation
        self.cause = cause

    def __str__(self) -> str:
        where = self.operation or "store"
        if self.cause is None:
            return f"{where}: {self.reason}"
        return f"{where}: {self.reason} ({type(self.cause).__name__})"


class UniqueViolation(StoreError):
    reason = "uniqueness violation"


class ForeignKeyViolation(StoreError):
    """A write referenced a parent row that does not exist."""

    reason = "missing reference"
