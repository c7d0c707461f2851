"""Assembles the reservation service from Django settings."""

from datetime import timedelta

from django.conf import settings

from reservations.domain import HourlyPriceCalculator, ReservationFactory, SystemClock
from reservations.services import ReservationService
from reservations.stores.django_store import (
    DjangoCouponStore,
    DjangoIdempotencyStore,
    DjangoNotificationStore,
    DjangoReservationStore,
    DjangoResourceStore,
    DjangoTransactionManager,
)


def build_reservation_service() -> ReservationService:
    return ReservationService(
        resources=DjangoResourceStore(),
        coupons=DjangoCouponStore(),
        reservations=DjangoReservationStore(),
        idempotency=DjangoIdempotencyStore(),
        notifications=DjangoNotificationStore(),
        transactions=DjangoTransactionManager(),
        factory=ReservationFactory(
            HourlyPriceCalculator(settings.RESERVATION_HOURLY_RATE_CENTS)
        ),
        clock=SystemClock(),
        idempotency_ttl=timedelta(hours=settings.IDEMPOTENCY_KEY_TTL_HOURS),
    )
