"""Unit tests for ReservationService.

These test the idempotency protocol, error mapping and transactional
behaviour against in-memory stores.
Run with: pytest tests/test_services.py -v
"""

import threading
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from reservations.domain import (
    Coupon,
    CouponCode,
    CouponId,
    IdempotencyKey,
    IdempotencyStatus,
    ReservationStatus,
    UserId,
)
from reservations.domain.errors import (
    CouponNotFoundError,
    DatabaseOperationError,
    DuplicateReservationError,
    IdempotencyStateError,
    InvalidIdError,
    LeadTimeNotMetError,
    Phase,
    ReservationConflictError,
    ReservationNotFoundError,
    ResourceNotFoundError,
)
from reservations.services import CreateOutcome, CreateReservationCommand
from tests.conftest import NOW

ALICE = UserId(value=1)
BOB = UserId(value=2)


def command(resource, start_offset=timedelta(days=1), hours=1, **kwargs) -> CreateReservationCommand:
    start = NOW + start_offset
    return CreateReservationCommand(
        resource_id=str(resource.id),
        start_time=start,
        end_time=start + timedelta(hours=hours),
        **kwargs,
    )


def new_key() -> IdempotencyKey:
    return IdempotencyKey(value=uuid4())


class TestCreateReservation:
    """Tests for ReservationService.create_reservation."""

    def test_creates_reservation_and_notification(self, service, db_fake, room):
        """A fresh key creates one reservation, one job and a completed record."""
        key = new_key()
        result = service.create_reservation(command(room, note=" hi "), ALICE, key)

        assert result.outcome is CreateOutcome.CREATED
        view = result.reservation
        assert view.status is ReservationStatus.CONFIRMED
        assert view.price_cents == 100_000
        assert view.note == "hi"
        assert view.user_email == "alice@example.com"

        assert len(db_fake.jobs) == 1
        job = db_fake.jobs[0]
        assert job["kind"] == "email"
        assert job["topic"] == "reservation_created"
        assert job["payload"]["reservation_id"] == str(view.id)
        assert job["payload"]["slot"] == view.slot.to_range_literal()

        record = db_fake.idempotency.get(key, ALICE, NOW)
        assert record.status is IdempotencyStatus.COMPLETED
        assert record.result_reservation_id.value == view.id
        assert record.response_body_hash

    def test_replays_completed_request(self, service, db_fake, room):
        """Retrying with the same key returns the stored reservation."""
        key = new_key()
        first = service.create_reservation(command(room), ALICE, key)
        second = service.create_reservation(command(room), ALICE, key)

        assert second.replayed
        assert second.reservation == first.reservation
        assert len(db_fake.reservation_rows) == 1
        assert len(db_fake.jobs) == 1

    def test_keys_are_scoped_per_user(self, service, db_fake, room):
        """The same key used by two users yields two independent requests."""
        key = new_key()
        service.create_reservation(command(room), ALICE, key)
        result = service.create_reservation(
            command(room, start_offset=timedelta(days=2)), BOB, key
        )
        assert result.outcome is CreateOutcome.CREATED
        assert len(db_fake.reservation_rows) == 2

    def test_in_progress_with_same_body(self, service, db_fake, room):
        """A processing record with the same request hash reports in progress."""
        key = new_key()
        cmd = command(room)
        db_fake.idempotency.try_insert(
            key, ALICE, "POST /reservations", cmd.fingerprint(), NOW + timedelta(hours=1), NOW
        )
        result = service.create_reservation(cmd, ALICE, key)
        assert result.in_progress
        assert result.reservation is None
        assert not db_fake.reservation_rows

    def test_processing_with_different_body_is_duplicate(self, service, db_fake, room):
        """A processing record with another request hash raises DuplicateReservationError."""
        key = new_key()
        db_fake.idempotency.try_insert(
            key, ALICE, "POST /reservations", "other-hash", NOW + timedelta(hours=1), NOW
        )
        with pytest.raises(DuplicateReservationError) as exc_info:
            service.create_reservation(command(room), ALICE, key)
        assert exc_info.value.phase is Phase.IDEMPOTENCY_CHECK

    def test_expired_record_is_reclaimed(self, service, db_fake, room, clock):
        """After the TTL passes, the same key starts a new request."""
        key = new_key()
        service.create_reservation(command(room), ALICE, key)
        clock.current = NOW + timedelta(hours=25)
        result = service.create_reservation(command(room, start_offset=timedelta(days=3)), ALICE, key)
        assert result.outcome is CreateOutcome.CREATED
        assert len(db_fake.reservation_rows) == 2

    def test_completed_record_without_result_is_corrupt(self, service, db_fake, room):
        """A completed record lacking its reservation ID raises IdempotencyStateError."""
        key = new_key()
        db_fake.idempotency.try_insert(
            key, ALICE, "POST /reservations", "h", NOW + timedelta(hours=1), NOW
        )
        record = db_fake.idempotency_rows[(key, ALICE)]
        db_fake.idempotency_rows[(key, ALICE)] = replace(record, status=IdempotencyStatus.COMPLETED)

        with pytest.raises(IdempotencyStateError):
            service.create_reservation(command(room), ALICE, key)

    def test_idempotency_store_failure(self, service, db_fake, room):
        """A failing claim surfaces as an opaque database error tagged with its phase."""
        db_fake.idempotency.fail_on_insert = True
        with pytest.raises(DatabaseOperationError) as exc_info:
            service.create_reservation(command(room), ALICE, new_key())
        assert exc_info.value.phase is Phase.IDEMPOTENCY_CHECK

    def test_overlap_conflict(self, service, db_fake, room):
        """An overlapping slot on the same resource raises ReservationConflictError."""
        service.create_reservation(command(room, hours=2), ALICE, new_key())
        with pytest.raises(ReservationConflictError) as exc_info:
            service.create_reservation(
                command(room, start_offset=timedelta(days=1, hours=1)), BOB, new_key()
            )
        assert exc_info.value.phase is Phase.DATABASE_OPERATION
        assert len(db_fake.reservation_rows) == 1

    def test_adjacent_slot_succeeds(self, service, db_fake, room):
        """A slot starting when another ends does not conflict."""
        service.create_reservation(command(room), ALICE, new_key())
        result = service.create_reservation(
            command(room, start_offset=timedelta(days=1, hours=1)), BOB, new_key()
        )
        assert result.outcome is CreateOutcome.CREATED

    def test_failed_claim_is_released(self, service, db_fake, room):
        """A request that fails leaves the key free for a corrected retry."""
        service.create_reservation(command(room), BOB, new_key())
        key = new_key()
        with pytest.raises(ReservationConflictError):
            service.create_reservation(command(room), ALICE, key)
        assert (key, ALICE) not in db_fake.idempotency_rows

        result = service.create_reservation(
            command(room, start_offset=timedelta(days=2)), ALICE, key
        )
        assert result.outcome is CreateOutcome.CREATED

    def test_notification_failure_rolls_back(self, service, db_fake, room):
        """A failed notification insert leaves no reservation behind."""
        db_fake.notifications.fail = True
        with pytest.raises(DatabaseOperationError) as exc_info:
            service.create_reservation(command(room), ALICE, new_key())
        assert exc_info.value.phase is Phase.DATABASE_OPERATION
        assert not db_fake.reservation_rows
        assert not db_fake.jobs
        assert not db_fake.idempotency_rows

    def test_lead_time_violation(self, service, room):
        """A slot inside the resource's lead time is rejected."""
        with pytest.raises(LeadTimeNotMetError) as exc_info:
            service.create_reservation(
                command(room, start_offset=timedelta(minutes=30)), ALICE, new_key()
            )
        assert exc_info.value.phase is Phase.DOMAIN_VALIDATION

    def test_unknown_resource(self, service, room):
        """An unknown resource raises ResourceNotFoundError."""
        cmd = replace(command(room), resource_id=str(uuid4()))
        with pytest.raises(ResourceNotFoundError):
            service.create_reservation(cmd, ALICE, new_key())

    def test_malformed_resource_id(self, service, room):
        """A malformed resource ID raises InvalidIdError."""
        cmd = replace(command(room), resource_id="nope")
        with pytest.raises(InvalidIdError):
            service.create_reservation(cmd, ALICE, new_key())

    def test_unknown_coupon(self, service, room):
        """An unknown coupon code raises CouponNotFoundError."""
        with pytest.raises(CouponNotFoundError):
            service.create_reservation(command(room, coupon_code="NOPE10"), ALICE, new_key())

    def test_coupon_discount_and_case_insensitive_lookup(self, service, db_fake, room):
        """Coupons are matched case-insensitively and discount the price."""
        coupon = Coupon(
            id=CouponId(value=uuid4()),
            code=CouponCode("SAVE10"),
            amount_off_cents=200,
            percent_off=Decimal("10"),
        )
        db_fake.add_coupon(coupon)
        result = service.create_reservation(command(room, coupon_code=" save10 "), ALICE, new_key())
        assert result.reservation.price_cents == (100_000 - 200) * 90 // 100
        assert result.reservation.coupon_code == "SAVE10"

    def test_fingerprint_ignores_coupon_case(self, room):
        """Equivalent request bodies hash identically."""
        assert (
            command(room, coupon_code="save10").fingerprint()
            == command(room, coupon_code=" SAVE10").fingerprint()
        )
        assert command(room).fingerprint() != command(room, note="x").fingerprint()

    def test_concurrent_requests_create_once(self, service, db_fake, room):
        """Parallel requests sharing a key produce exactly one reservation."""
        key = new_key()
        cmd = command(room)
        results, errors = [], []

        def run():
            try:
                results.append(service.create_reservation(cmd, ALICE, key))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=run) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(db_fake.reservation_rows) == 1
        outcomes = [r.outcome for r in results]
        assert outcomes.count(CreateOutcome.CREATED) == 1
        assert set(outcomes) <= {CreateOutcome.CREATED, CreateOutcome.REPLAYED, CreateOutcome.IN_PROGRESS}


class TestReservationQueries:
    """Tests for get_reservation and list_user_reservations."""

    def test_owner_can_read(self, service, room):
        """The owner can fetch their reservation."""
        created = service.create_reservation(command(room), ALICE, new_key()).reservation
        assert service.get_reservation(str(created.id), ALICE) == created

    def test_other_user_gets_not_found(self, service, room):
        """Another user's reservation reads as not found."""
        created = service.create_reservation(command(room), ALICE, new_key()).reservation
        with pytest.raises(ReservationNotFoundError):
            service.get_reservation(str(created.id), BOB)

    def test_staff_can_read_any(self, service, room):
        """Staff may read reservations they do not own."""
        created = service.create_reservation(command(room), ALICE, new_key()).reservation
        assert service.get_reservation(str(created.id), BOB, actor_is_staff=True).id == created.id

    def test_invalid_id(self, service):
        """A malformed reservation ID raises InvalidIdError."""
        with pytest.raises(InvalidIdError):
            service.get_reservation("bad", ALICE)

    def test_list_newest_first(self, service, room, clock):
        """list_user_reservations returns only the user's reservations, newest first."""
        first = service.create_reservation(command(room), ALICE, new_key()).reservation
        clock.current = NOW + timedelta(minutes=1)
        second = service.create_reservation(
            command(room, start_offset=timedelta(days=2)), ALICE, new_key()
        ).reservation
        service.create_reservation(command(room, start_offset=timedelta(days=3)), BOB, new_key())

        items = service.list_user_reservations(ALICE)
        assert [i.id for i in items] == [second.id, first.id]
        assert items[0].resource_name == "Room A"
