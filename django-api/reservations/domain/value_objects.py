"""Domain primitives that enforce validity at creation time."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_FLOOR, Decimal
from typing import Self
from uuid import UUID, uuid4

from reservations.domain.errors import (
    InvalidCouponCodeError,
    InvalidIdError,
    InvalidTimeSlotError,
    LeadTimeNotMetError,
    NegativePriceError,
    NoteTooLongError,
    PriceOutOfRangeError,
)

MAX_PRICE_CENTS = 2**31 - 1
MAX_NOTE_LENGTH = 1000

_COUPON_CODE_RE = re.compile(r"^[A-Z0-9]{3,20}$")


def _parse_uuid(value: str, field: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise InvalidIdError(field) from exc


@dataclass(frozen=True)
class ReservationId:
    """Unique identifier for a Reservation."""

    value: UUID

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=_parse_uuid(value, "reservation ID"))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ResourceId:
    """Unique identifier for a Resource."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=_parse_uuid(value, "resource ID"))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class CouponId:
    """Unique identifier for a Coupon."""

    value: UUID

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class UserId:
    """Primary key of the owning auth user."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class IdempotencyKey:
    """Client-supplied token scoping request deduplication."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=_parse_uuid(value, "idempotency key"))

    def __str__(self) -> str:
        return str(self.value)


def _rfc3339(instant: datetime) -> str:
    return instant.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class TimeSlot:
    """Half-open interval [start, end) between two aware instants."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidTimeSlotError("Time slot bounds must be timezone-aware")
        if self.start >= self.end:
            raise InvalidTimeSlotError()

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start < other.end and other.start < self.end

    def meets_lead_time(self, now: datetime, lead_time_minutes: int) -> bool:
        """True iff the slot starts strictly after now + lead time."""
        return self.start > now + timedelta(minutes=lead_time_minutes)

    def validate_lead_time(self, now: datetime, lead_time_minutes: int) -> None:
        if not self.meets_lead_time(now, lead_time_minutes):
            raise LeadTimeNotMetError(lead_time_minutes)

    def to_range_literal(self) -> str:
        """Render as a range literal, e.g. [2026-01-01T10:00:00Z,2026-01-01T11:00:00Z)."""
        return f"[{_rfc3339(self.start)},{_rfc3339(self.end)})"

    @classmethod
    def from_range_literal(cls, literal: str) -> Self:
        literal = literal.strip()
        if not (literal.startswith("[") and literal.endswith(")")):
            raise InvalidTimeSlotError("Time slot must be a half-open range literal")
        try:
            start, end = literal[1:-1].split(",")
            return cls(
                start=datetime.fromisoformat(start.strip().strip('"')),
                end=datetime.fromisoformat(end.strip().strip('"')),
            )
        except ValueError as exc:
            raise InvalidTimeSlotError("Malformed time slot range literal") from exc


def apply_discount(
    base_cents: int,
    amount_off_cents: int | None = None,
    percent_off: Decimal | None = None,
) -> int:
    """Apply a fixed discount, then a percentage discount, clamped at zero.

    The percentage step is floored: floor(remaining * (100 - pct) / 100).
    """
    remaining = base_cents
    if amount_off_cents is not None:
        remaining -= amount_off_cents
    if percent_off is not None:
        factor = (Decimal(100) - Decimal(percent_off)) / Decimal(100)
        remaining = int((Decimal(remaining) * factor).to_integral_value(rounding=ROUND_FLOOR))
    return max(remaining, 0)


@dataclass(frozen=True)
class Money:
    """Non-negative amount in minor units that fits a signed 32-bit column."""

    cents: int

    def __post_init__(self) -> None:
        if self.cents < 0:
            raise NegativePriceError()
        if self.cents > MAX_PRICE_CENTS:
            raise PriceOutOfRangeError()

    @classmethod
    def zero(cls) -> Self:
        return cls(cents=0)

    def apply_discount(
        self, amount_off_cents: int | None = None, percent_off: Decimal | None = None
    ) -> "Money":
        return Money(cents=apply_discount(self.cents, amount_off_cents, percent_off))

    def __str__(self) -> str:
        return f"{self.cents / 100:.2f}"


@dataclass(frozen=True)
class Note:
    """Trimmed free text of at most MAX_NOTE_LENGTH characters."""

    value: str = ""

    def __post_init__(self) -> None:
        trimmed = self.value.strip()
        if len(trimmed) > MAX_NOTE_LENGTH:
            raise NoteTooLongError(MAX_NOTE_LENGTH)
        object.__setattr__(self, "value", trimmed)

    @property
    def is_empty(self) -> bool:
        return self.value == ""

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CouponCode:
    """Upper-cased alphanumeric coupon code, 3 to 20 characters."""

    value: str

    def __post_init__(self) -> None:
        normalized = self.value.strip().upper()
        if not _COUPON_CODE_RE.match(normalized):
            raise InvalidCouponCodeError()
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value
