"""Unit tests for ReservationFactory.

Run with: pytest tests/test_factory.py -v
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from reservations.domain import (
    Coupon,
    CouponCode,
    CouponId,
    HourlyPriceCalculator,
    Note,
    PriceCalculator,
    ReservationFactory,
    ReservationStatus,
    Resource,
    ResourceId,
    TimeSlot,
    UserId,
)
from reservations.domain.errors import (
    InvalidCouponError,
    LeadTimeNotMetError,
    NegativePriceError,
    PriceOutOfRangeError,
)

NOW = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


class StubCalculator(PriceCalculator):
    def __init__(self, cents: int) -> None:
        self.cents = cents

    def calculate_price_cents(self, context, slot) -> int:
        return self.cents


@pytest.fixture
def resource() -> Resource:
    return Resource(id=ResourceId(value=uuid4()), name="Room A", lead_time_minutes=60)


def slot_starting_in(minutes: int, hours: float = 1) -> TimeSlot:
    start = NOW + timedelta(minutes=minutes)
    return TimeSlot(start=start, end=start + timedelta(hours=hours))


def build(factory, resource, time_slot, coupon=None, note=""):
    return factory.create_reservation(
        resource=resource,
        user_id=UserId(value=1),
        time_slot=time_slot,
        coupon=coupon,
        note=Note(note),
        now=NOW,
    )


class TestReservationFactory:
    """Tests for ReservationFactory.create_reservation."""

    def test_rejects_slot_inside_lead_time(self, resource):
        """A slot 30 minutes out fails a 60 minute lead time."""
        factory = ReservationFactory(HourlyPriceCalculator())
        with pytest.raises(LeadTimeNotMetError):
            build(factory, resource, slot_starting_in(30))

    def test_accepts_slot_beyond_lead_time(self, resource):
        """A slot 90 minutes out satisfies a 60 minute lead time."""
        factory = ReservationFactory(HourlyPriceCalculator())
        reservation = build(factory, resource, slot_starting_in(90), note="  window seat ")
        assert reservation.status is ReservationStatus.CONFIRMED
        assert reservation.price.cents == 100_000
        assert reservation.note.value == "window seat"
        assert reservation.created_at == reservation.updated_at == NOW
        assert reservation.coupon_id is None

    def test_prices_fractional_hours(self, resource):
        """Hourly pricing is proportional to duration and truncated."""
        factory = ReservationFactory(HourlyPriceCalculator(hourly_rate_cents=1000))
        reservation = build(factory, resource, slot_starting_in(90, hours=1.5))
        assert reservation.price.cents == 1500

    def test_rejects_negative_base_price(self, resource):
        """A pricing strategy returning a negative value is rejected."""
        factory = ReservationFactory(StubCalculator(-1))
        with pytest.raises(NegativePriceError):
            build(factory, resource, slot_starting_in(90))

    def test_rejects_price_beyond_column_range(self, resource):
        """A price above the 32-bit range is rejected."""
        factory = ReservationFactory(StubCalculator(2**31))
        with pytest.raises(PriceOutOfRangeError):
            build(factory, resource, slot_starting_in(90))

    def test_applies_coupon(self, resource):
        """Coupon discounts apply amount first, then percentage."""
        coupon = Coupon(
            id=CouponId(value=uuid4()),
            code=CouponCode("SAVE10"),
            amount_off_cents=200,
            percent_off=Decimal("10"),
        )
        factory = ReservationFactory(StubCalculator(1000))
        reservation = build(factory, resource, slot_starting_in(90), coupon=coupon)
        assert reservation.price.cents == 720
        assert reservation.coupon_id == coupon.id

    def test_rejects_expired_coupon(self, resource):
        """A coupon whose window has closed cannot be used."""
        coupon = Coupon(
            id=CouponId(value=uuid4()),
            code=CouponCode("OLD"),
            amount_off_cents=100,
            valid_to=NOW - timedelta(days=1),
        )
        factory = ReservationFactory(StubCalculator(1000))
        with pytest.raises(InvalidCouponError):
            build(factory, resource, slot_starting_in(90), coupon=coupon)
