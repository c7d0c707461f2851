"""Factory for new Reservation aggregates.

This is the only construction path that applies the creation rules: lead
time, base price, coupon window and discount.
"""

from datetime import datetime

from reservations.domain.errors import NegativePriceError
from reservations.domain.models import (
    Coupon,
    Reservation,
    ReservationStatus,
    Resource,
    ResourcePriceContext,
)
from reservations.domain.pricing import PriceCalculator
from reservations.domain.value_objects import Money, Note, ReservationId, TimeSlot, UserId


class ReservationFactory:
    """Builds validated reservations using an injected pricing strategy."""

    def __init__(self, price_calculator: PriceCalculator) -> None:
        self._price_calculator = price_calculator

    def create_reservation(
        self,
        resource: Resource,
        user_id: UserId,
        time_slot: TimeSlot,
        coupon: Coupon | None,
        note: Note,
        now: datetime,
    ) -> Reservation:
        """Create a confirmed reservation priced at `now`.

        Raises:
            LeadTimeNotMetError: If the slot starts too soon.
            NegativePriceError: If the pricing strategy returns a negative value.
            PriceOutOfRangeError: If the price does not fit the price column.
            InvalidCouponError: If the coupon is not valid at `now`.
        """
        time_slot.validate_lead_time(now, resource.effective_lead_time_minutes)

        price_cents = self._price_calculator.calculate_price_cents(
            ResourcePriceContext.for_resource(resource), time_slot
        )
        if price_cents < 0:
            raise NegativePriceError()

        if coupon is not None:
            coupon.validate_usage(now)
            price_cents = coupon.apply_discount(price_cents)

        return Reservation(
            id=ReservationId.new(),
            resource_id=resource.id,
            user_id=user_id,
            time_slot=time_slot,
            status=ReservationStatus.CONFIRMED,
            price=Money(cents=price_cents),
            coupon_id=coupon.id if coupon is not None else None,
            note=note,
            created_at=now,
            updated_at=now,
        )
