from reservations.domain.clock import Clock, SystemClock
from reservations.domain.factory import ReservationFactory
from reservations.domain.models import (
    Coupon,
    IdempotencyRecord,
    IdempotencyStatus,
    Reservation,
    ReservationListItem,
    ReservationStatus,
    ReservationView,
    Resource,
    ResourcePriceContext,
)
from reservations.domain.pricing import HourlyPriceCalculator, PriceCalculator
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

__all__ = [
    "Clock",
    "SystemClock",
    "ReservationFactory",
    "Coupon",
    "IdempotencyRecord",
    "IdempotencyStatus",
    "Reservation",
    "ReservationListItem",
    "ReservationStatus",
    "ReservationView",
    "Resource",
    "ResourcePriceContext",
    "HourlyPriceCalculator",
    "PriceCalculator",
    "CouponCode",
    "CouponId",
    "IdempotencyKey",
    "Money",
    "Note",
    "ReservationId",
    "ResourceId",
    "TimeSlot",
    "UserId",
    "apply_discount",
]
