"""Storage error kinds raised by store implementations."""

from enum import Enum


class StoreErrorKind(Enum):
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    FOREIGN_KEY_VIOLATED = "FOREIGN_KEY_VIOLATED"
    DB_FAILURE = "DB_FAILURE"


class StoreError(Exception):
    """Raised by stores; the low-level database error is kept as __cause__."""

    def __init__(self, kind: StoreErrorKind, message: str) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.message = message

    def is_kind(self, kind: StoreErrorKind) -> bool:
        return self.kind is kind
