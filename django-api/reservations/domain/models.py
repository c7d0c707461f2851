"""Domain models for reservations.

These are pure domain objects with no API input rules.
Django ORM models are in reservations/models.py (persistence layer).
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Self
from uuid import UUID

from reservations.domain.errors import (
    InvalidCouponError,
    InvalidDiscountError,
    InvalidResourceError,
    ReservationCanceledError,
)
from reservations.domain.value_objects import (
    CouponCode,
    CouponId,
    IdempotencyKey,
    Money,
    Note,
    ReservationId,
    ResourceId,
    TimeSlot,
    UserId,
    apply_discount,
)

MAX_RESOURCE_NAME_LENGTH = 255


class ReservationStatus(Enum):
    CONFIRMED = "confirmed"
    CANCELED = "canceled"


class IdempotencyStatus(Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Resource:
    """A bookable resource with a minimum lead-time policy."""

    id: ResourceId
    name: str
    lead_time_minutes: int = 0

    def __post_init__(self) -> None:
        name = self.name.strip()
        if not name:
            raise InvalidResourceError("Resource name cannot be empty")
        if len(name) > MAX_RESOURCE_NAME_LENGTH:
            raise InvalidResourceError(
                f"Resource name cannot exceed {MAX_RESOURCE_NAME_LENGTH} characters"
            )
        object.__setattr__(self, "name", name)

    @property
    def effective_lead_time_minutes(self) -> int:
        """Lead time with negative values clamped to zero."""
        return max(self.lead_time_minutes, 0)


@dataclass(frozen=True)
class ResourcePriceContext:
    """The subset of a resource that pricing strategies may depend on."""

    resource_id: ResourceId
    resource_name: str

    @classmethod
    def for_resource(cls, resource: Resource) -> Self:
        return cls(resource_id=resource.id, resource_name=resource.name)


@dataclass(frozen=True)
class Coupon:
    """Read-only discount policy.

    Both discounts may be present; the fixed amount applies before the
    percentage. Missing window bounds are unbounded.
    """

    id: CouponId
    code: CouponCode
    amount_off_cents: int | None = None
    percent_off: Decimal | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None

    def __post_init__(self) -> None:
        if self.amount_off_cents is not None and self.amount_off_cents < 0:
            raise InvalidDiscountError("Discount amount cannot be negative")
        if self.percent_off is not None and not 0 <= self.percent_off <= 100:
            raise InvalidDiscountError("Percentage discount must be between 0 and 100")

    def is_valid_at(self, instant: datetime) -> bool:
        if self.valid_from is not None and instant < self.valid_from:
            return False
        if self.valid_to is not None and instant > self.valid_to:
            return False
        return True

    def validate_usage(self, instant: datetime) -> None:
        """Raise InvalidCouponError unless instant lies in [valid_from, valid_to]."""
        if self.is_valid_at(instant):
            return
        if self.valid_from is not None and instant < self.valid_from:
            raise InvalidCouponError("Coupon is not yet valid")
        raise InvalidCouponError("Coupon has expired")

    def apply_discount(self, base_cents: int) -> int:
        return apply_discount(base_cents, self.amount_off_cents, self.percent_off)


@dataclass(frozen=True)
class Reservation:
    """Aggregate root for a booked time slot.

    New reservations come from ReservationFactory.create_reservation; rows
    loaded from storage come back through Reservation.reconstruct.
    """

    id: ReservationId
    resource_id: ResourceId
    user_id: UserId
    time_slot: TimeSlot
    status: ReservationStatus
    price: Money
    coupon_id: CouponId | None
    note: Note
    created_at: datetime
    updated_at: datetime

    @classmethod
    def reconstruct(
        cls,
        *,
        id: ReservationId,
        resource_id: ResourceId,
        user_id: UserId,
        time_slot: TimeSlot,
        status: ReservationStatus,
        price: Money,
        coupon_id: CouponId | None,
        note: Note,
        created_at: datetime,
        updated_at: datetime,
    ) -> Self:
        """Rehydrate persisted state without re-running creation rules."""
        return cls(
            id=id,
            resource_id=resource_id,
            user_id=user_id,
            time_slot=time_slot,
            status=status,
            price=price,
            coupon_id=coupon_id,
            note=note,
            created_at=created_at,
            updated_at=updated_at,
        )

    @property
    def is_active(self) -> bool:
        return self.status is ReservationStatus.CONFIRMED

    @property
    def is_canceled(self) -> bool:
        return self.status is ReservationStatus.CANCELED

    def has_ended(self, now: datetime) -> bool:
        return now > self.time_slot.end

    def cancel(self, now: datetime) -> "Reservation":
        """Return a canceled copy of this reservation.

        Raises:
            ReservationCanceledError: If the reservation is already canceled.
        """
        if self.is_canceled:
            raise ReservationCanceledError()
        return replace(self, status=ReservationStatus.CANCELED, updated_at=now)


@dataclass(frozen=True)
class IdempotencyRecord:
    """Ledger entry deduplicating requests per (key, user)."""

    key: IdempotencyKey
    user_id: UserId
    endpoint: str
    request_hash: str
    status: IdempotencyStatus
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    response_body_hash: str | None = None
    result_reservation_id: ReservationId | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class ReservationView:
    """Read model returned to callers of the reservation workflow."""

    id: UUID
    resource_id: UUID
    resource_name: str
    user_id: int
    user_email: str
    slot: TimeSlot
    status: ReservationStatus
    price_cents: int
    coupon_id: UUID | None
    coupon_code: str | None
    note: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ReservationListItem:
    """Compact read model for listing a user's reservations."""

    id: UUID
    resource_id: UUID
    resource_name: str
    slot: TimeSlot
    status: ReservationStatus
    price_cents: int
    created_at: datetime
