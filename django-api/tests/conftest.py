"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from rest_framework.test import APIClient

from reservations.domain import (
    HourlyPriceCalculator,
    ReservationFactory,
    Resource,
    ResourceId,
)
from reservations.services import ReservationService
from tests.fakes import FixedClock, InMemoryDatabase

NOW = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(
        username="alice", email="alice@example.com", password="secret"
    )


@pytest.fixture
def other_user(django_user_model):
    return django_user_model.objects.create_user(
        username="bob", email="bob@example.com", password="secret"
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def db_fake() -> InMemoryDatabase:
    db = InMemoryDatabase()
    db.add_user(1, "alice@example.com")
    db.add_user(2, "bob@example.com")
    return db


@pytest.fixture
def room(db_fake: InMemoryDatabase) -> Resource:
    resource = Resource(id=ResourceId(value=uuid4()), name="Room A", lead_time_minutes=60)
    db_fake.add_resource(resource)
    return resource


@pytest.fixture
def service(db_fake: InMemoryDatabase, clock: FixedClock) -> ReservationService:
    return ReservationService(
        resources=db_fake.resources,
        coupons=db_fake.coupons,
        reservations=db_fake.reservations,
        idempotency=db_fake.idempotency,
        notifications=db_fake.notifications,
        transactions=db_fake.transactions,
        factory=ReservationFactory(HourlyPriceCalculator(100_000)),
        clock=clock,
        idempotency_ttl=timedelta(hours=24),
    )
