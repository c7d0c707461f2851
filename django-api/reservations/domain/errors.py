"""Domain error codes for the reservations module.

Every error carries a stable ErrorCode and an ErrorKind. Callers branch on the
kind (or the concrete type), never on the message.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Self


class ErrorKind(Enum):
    """Coarse error categories that callers map to transport status codes."""

    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_TIME_SLOT = "INVALID_TIME_SLOT"
    LEAD_TIME_NOT_MET = "LEAD_TIME_NOT_MET"
    NEGATIVE_PRICE = "NEGATIVE_PRICE"
    PRICE_OUT_OF_RANGE = "PRICE_OUT_OF_RANGE"
    INVALID_COUPON = "INVALID_COUPON"
    INVALID_COUPON_CODE = "INVALID_COUPON_CODE"
    INVALID_DISCOUNT = "INVALID_DISCOUNT"
    INVALID_RESOURCE = "INVALID_RESOURCE"
    NOTE_TOO_LONG = "NOTE_TOO_LONG"
    INVALID_ID = "INVALID_ID"
    RESERVATION_CANCELED = "RESERVATION_CANCELED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    COUPON_NOT_FOUND = "COUPON_NOT_FOUND"
    RESERVATION_NOT_FOUND = "RESERVATION_NOT_FOUND"
    IDEMPOTENCY_KEY_NOT_FOUND = "IDEMPOTENCY_KEY_NOT_FOUND"
    RESERVATION_CONFLICT = "RESERVATION_CONFLICT"
    DUPLICATE_RESERVATION = "DUPLICATE_RESERVATION"
    IDEMPOTENCY_IN_PROGRESS = "IDEMPOTENCY_IN_PROGRESS"
    STORAGE_CONSTRAINT_VIOLATED = "STORAGE_CONSTRAINT_VIOLATED"
    IDEMPOTENCY_STATE_CORRUPTED = "IDEMPOTENCY_STATE_CORRUPTED"
    DATABASE_OPERATION_FAILED = "DATABASE_OPERATION_FAILED"


class Phase(Enum):
    """Stage of the reservation workflow in which an error surfaced."""

    IDEMPOTENCY_CHECK = "idempotency_check"
    DOMAIN_VALIDATION = "domain_validation"
    DATABASE_OPERATION = "database_operation"


_KIND_BY_CODE = {
    ErrorCode.INVALID_TIME_SLOT: ErrorKind.VALIDATION,
    ErrorCode.LEAD_TIME_NOT_MET: ErrorKind.VALIDATION,
    ErrorCode.NEGATIVE_PRICE: ErrorKind.VALIDATION,
    ErrorCode.PRICE_OUT_OF_RANGE: ErrorKind.VALIDATION,
    ErrorCode.INVALID_COUPON: ErrorKind.VALIDATION,
    ErrorCode.INVALID_COUPON_CODE: ErrorKind.VALIDATION,
    ErrorCode.INVALID_DISCOUNT: ErrorKind.VALIDATION,
    ErrorCode.INVALID_RESOURCE: ErrorKind.VALIDATION,
    ErrorCode.NOTE_TOO_LONG: ErrorKind.VALIDATION,
    ErrorCode.INVALID_ID: ErrorKind.VALIDATION,
    ErrorCode.RESERVATION_CANCELED: ErrorKind.CONFLICT,
    ErrorCode.RESOURCE_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.COUPON_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.RESERVATION_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.IDEMPOTENCY_KEY_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.RESERVATION_CONFLICT: ErrorKind.CONFLICT,
    ErrorCode.DUPLICATE_RESERVATION: ErrorKind.CONFLICT,
    ErrorCode.IDEMPOTENCY_IN_PROGRESS: ErrorKind.CONFLICT,
    ErrorCode.STORAGE_CONSTRAINT_VIOLATED: ErrorKind.CONFLICT,
    ErrorCode.IDEMPOTENCY_STATE_CORRUPTED: ErrorKind.INTERNAL,
    ErrorCode.DATABASE_OPERATION_FAILED: ErrorKind.INTERNAL,
}


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    phase = None

    @property
    def kind(self) -> ErrorKind:
        return _KIND_BY_CODE[self.code]

    def in_phase(self, phase: Phase) -> Self:
        """Record the workflow phase this error surfaced in and return self."""
        object.__setattr__(self, "phase", phase)
        return self

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


def is_kind(error: BaseException, kind: ErrorKind) -> bool:
    """Return True if error is a DomainError of the given kind."""
    return isinstance(error, DomainError) and error.kind is kind


class InvalidTimeSlotError(DomainError):
    """Raised when a time slot does not start strictly before it ends."""

    def __init__(self, reason: str = "Start time must be before end time") -> None:
        super().__init__(code=ErrorCode.INVALID_TIME_SLOT, message=reason)


class LeadTimeNotMetError(DomainError):
    """Raised when a slot starts too soon for the resource's lead time."""

    def __init__(self, lead_time_minutes: int) -> None:
        super().__init__(
            code=ErrorCode.LEAD_TIME_NOT_MET,
            message="Lead time requirement not met",
        )
        self.lead_time_minutes = lead_time_minutes


class NegativePriceError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NEGATIVE_PRICE,
            message="Price cannot be negative",
        )


class PriceOutOfRangeError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PRICE_OUT_OF_RANGE,
            message="Price exceeds the storable range",
        )


class InvalidCouponError(DomainError):
    """Raised when a coupon is used outside its validity window."""

    def __init__(self, reason: str = "Invalid or expired coupon") -> None:
        super().__init__(code=ErrorCode.INVALID_COUPON, message=reason)


class InvalidCouponCodeError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_COUPON_CODE,
            message="Invalid coupon code format",
        )


class InvalidDiscountError(DomainError):
    def __init__(self, reason: str) -> None:
        super().__init__(code=ErrorCode.INVALID_DISCOUNT, message=reason)


class InvalidResourceError(DomainError):
    def __init__(self, reason: str) -> None:
        super().__init__(code=ErrorCode.INVALID_RESOURCE, message=reason)


class NoteTooLongError(DomainError):
    """Raised when a note exceeds the maximum number of characters."""

    def __init__(self, max_length: int) -> None:
        super().__init__(
            code=ErrorCode.NOTE_TOO_LONG,
            message=f"Note cannot exceed {max_length} characters",
        )
        self.max_length = max_length


class InvalidIdError(DomainError):
    """Raised when an identifier is not in the expected format."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {field} format",
        )
        self.field = field


class ReservationCanceledError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.RESERVATION_CANCELED,
            message="Reservation is already canceled",
        )


class ResourceNotFoundError(DomainError):
    def __init__(self, resource_id: str) -> None:
        super().__init__(
            code=ErrorCode.RESOURCE_NOT_FOUND,
            message="Resource not found",
        )
        self.resource_id = resource_id


class CouponNotFoundError(DomainError):
    def __init__(self, code: str) -> None:
        super().__init__(
            code=ErrorCode.COUPON_NOT_FOUND,
            message="Coupon not found",
        )
        self.coupon_code = code


class ReservationNotFoundError(DomainError):
    def __init__(self, reservation_id: str) -> None:
        super().__init__(
            code=ErrorCode.RESERVATION_NOT_FOUND,
            message="Reservation not found",
        )
        self.reservation_id = reservation_id


class IdempotencyKeyNotFoundError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.IDEMPOTENCY_KEY_NOT_FOUND,
            message="Idempotency key not found or expired",
        )


class ReservationConflictError(DomainError):
    """Raised when the requested slot overlaps an active reservation."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.RESERVATION_CONFLICT,
            message="Time slot conflicts with an existing reservation",
        )


class DuplicateReservationError(DomainError):
    """Raised when an idempotency key is reused for a different request."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_RESERVATION,
            message="Idempotency key was already used for a different request",
        )


class IdempotencyInProgressError(DomainError):
    """Raised by handlers when a retried request is still being processed."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.IDEMPOTENCY_IN_PROGRESS,
            message="A request with this idempotency key is still in progress",
        )


class IdempotencyStateError(DomainError):
    """Raised when a completed idempotency record has no result reference."""

    def __init__(self, reason: str) -> None:
        super().__init__(code=ErrorCode.IDEMPOTENCY_STATE_CORRUPTED, message=reason)


class DatabaseOperationError(DomainError):
    """Opaque storage failure. The original exception is kept as __cause__."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.DATABASE_OPERATION_FAILED,
            message="Database operation failed",
        )


class StorageConstraintError(DomainError):
    """Raised when a write violates a unique or foreign-key constraint."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.STORAGE_CONSTRAINT_VIOLATED,
            message="Request conflicts with existing data",
        )
