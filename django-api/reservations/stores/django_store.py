"""Django ORM implementations of the store interfaces.

Each store converts ORM rows to domain models and translates database errors
into StoreError kinds.
"""

import logging
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime
from typing import Any

from django.db import DatabaseError, IntegrityError, transaction

from reservations import models as orm
from reservations.domain import (
    Coupon,
    CouponCode,
    CouponId,
    IdempotencyKey,
    IdempotencyRecord,
    IdempotencyStatus,
    Money,
    Note,
    Reservation,
    ReservationId,
    ReservationListItem,
    ReservationStatus,
    ReservationView,
    Resource,
    ResourceId,
    TimeSlot,
    UserId,
)
from reservations.stores.errors import StoreError, StoreErrorKind
from reservations.stores.interfaces import (
    CouponStore,
    IdempotencyStore,
    NotificationStore,
    ReservationStore,
    ResourceStore,
    TransactionManager,
)

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes
_EXCLUSION_VIOLATION = "23P01"
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


def _integrity_kind(exc: IntegrityError) -> StoreErrorKind:
    text = str(exc)
    sqlstate = getattr(exc.__cause__, "sqlstate", None)
    if orm.NO_OVERLAP_CONSTRAINT in text or sqlstate == _EXCLUSION_VIOLATION:
        return StoreErrorKind.CONFLICT
    if sqlstate == _UNIQUE_VIOLATION or "UNIQUE constraint failed" in text:
        return StoreErrorKind.DUPLICATE_KEY
    if sqlstate == _FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in text:
        return StoreErrorKind.FOREIGN_KEY_VIOLATED
    return StoreErrorKind.DB_FAILURE


@contextmanager
def _translate_errors(message: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        kind = _integrity_kind(exc)
        level = logging.ERROR if kind is StoreErrorKind.DB_FAILURE else logging.WARNING
        logger.log(level, "Repository error: %s", message, extra={"kind": kind.value})
        raise StoreError(kind, message) from exc
    except DatabaseError as exc:
        logger.error(
            "Repository error: %s", message, extra={"kind": StoreErrorKind.DB_FAILURE.value}
        )
        raise StoreError(StoreErrorKind.DB_FAILURE, message) from exc


def _slot(row: orm.Reservation) -> TimeSlot:
    return TimeSlot(start=row.slot_start, end=row.slot_end)


def _to_view(row: orm.Reservation) -> ReservationView:
    return ReservationView(
        id=row.id,
        resource_id=row.resource_id,
        resource_name=row.resource.name,
        user_id=row.user_id,
        user_email=row.user.email,
        slot=_slot(row),
        status=ReservationStatus(row.status),
        price_cents=row.price_cents,
        coupon_id=row.coupon_id,
        coupon_code=row.coupon.code if row.coupon is not None else None,
        note=row.note,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_reservation(row: orm.Reservation) -> Reservation:
    return Reservation.reconstruct(
        id=ReservationId(value=row.id),
        resource_id=ResourceId(value=row.resource_id),
        user_id=UserId(value=row.user_id),
        time_slot=_slot(row),
        status=ReservationStatus(row.status),
        price=Money(cents=row.price_cents),
        coupon_id=CouponId(value=row.coupon_id) if row.coupon_id is not None else None,
        note=Note(row.note),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class DjangoResourceStore(ResourceStore):
    def find_by_id(self, resource_id: ResourceId) -> Resource | None:
        with _translate_errors("failed to find resource"):
            row = orm.Resource.objects.filter(pk=resource_id.value).first()
        if row is None:
            return None
        return Resource(id=ResourceId(value=row.id), name=row.name, lead_time_minutes=row.lead_time_min)


class DjangoCouponStore(CouponStore):
    def find_by_code(self, code: str) -> Coupon | None:
        with _translate_errors("failed to find coupon"):
            row = orm.Coupon.objects.filter(code__iexact=code).first()
        if row is None:
            return None
        return Coupon(
            id=CouponId(value=row.id),
            code=CouponCode(row.code),
            amount_off_cents=row.amount_off_cents,
            percent_off=row.percent_off,
            valid_from=row.valid_from,
            valid_to=row.valid_to,
        )


class DjangoReservationStore(ReservationStore):
    """PostgreSQL-backed reservation store using Django ORM."""

    def create(self, reservation: Reservation) -> ReservationView:
        # Savepoint so a constraint violation leaves the outer transaction usable
        # for rollback.
        with _translate_errors("failed to create reservation"), transaction.atomic():
            orm.Reservation.objects.create(
                id=reservation.id.value,
                resource_id=reservation.resource_id.value,
                user_id=reservation.user_id.value,
                slot_start=reservation.time_slot.start,
                slot_end=reservation.time_slot.end,
                status=reservation.status.value,
                price_cents=reservation.price.cents,
                coupon_id=reservation.coupon_id.value if reservation.coupon_id else None,
                note=str(reservation.note),
                created_at=reservation.created_at,
                updated_at=reservation.updated_at,
            )

        view = self.find_by_id(reservation.id)
        if view is None:
            raise StoreError(StoreErrorKind.NOT_FOUND, "created reservation not readable")
        return view

    def find_by_id(self, reservation_id: ReservationId) -> ReservationView | None:
        with _translate_errors("failed to find reservation"):
            row = (
                orm.Reservation.objects.select_related("resource", "user", "coupon")
                .filter(pk=reservation_id.value)
                .first()
            )
        return _to_view(row) if row is not None else None

    def find_by_user_id(self, user_id: UserId) -> list[ReservationListItem]:
        with _translate_errors("failed to list user reservations"):
            rows = list(
                orm.Reservation.objects.select_related("resource")
                .filter(user_id=user_id.value)
                .order_by("-created_at", "-id")
            )
        return [
            ReservationListItem(
                id=row.id,
                resource_id=row.resource_id,
                resource_name=row.resource.name,
                slot=_slot(row),
                status=ReservationStatus(row.status),
                price_cents=row.price_cents,
                created_at=row.created_at,
            )
            for row in rows
        ]

    def get(self, reservation_id: ReservationId) -> Reservation | None:
        with _translate_errors("failed to load reservation"):
            row = orm.Reservation.objects.filter(pk=reservation_id.value).first()
        return _to_reservation(row) if row is not None else None


class DjangoIdempotencyStore(IdempotencyStore):
    def try_insert(
        self,
        key: IdempotencyKey,
        user_id: UserId,
        endpoint: str,
        request_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> bool:
        with _translate_errors("failed to try insert idempotency key"):
            orm.IdempotencyKey.objects.filter(
                key=key.value, user_id=user_id.value, expires_at__lte=now
            ).delete()
            try:
                # The unique (key, user) constraint arbitrates concurrent claims.
                with transaction.atomic():
                    orm.IdempotencyKey.objects.create(
                        key=key.value,
                        user_id=user_id.value,
                        endpoint=endpoint,
                        request_hash=request_hash,
                        status=orm.IdempotencyKey.Status.PROCESSING,
                        expires_at=expires_at,
                        created_at=now,
                        updated_at=now,
                    )
            except IntegrityError as exc:
                if _integrity_kind(exc) is not StoreErrorKind.DUPLICATE_KEY:
                    raise
                return False
        return True

    def get(self, key: IdempotencyKey, user_id: UserId, now: datetime) -> IdempotencyRecord | None:
        with _translate_errors("failed to get idempotency key"):
            row = orm.IdempotencyKey.objects.filter(key=key.value, user_id=user_id.value).first()
        if row is None:
            return None
        record = IdempotencyRecord(
            key=IdempotencyKey(value=row.key),
            user_id=UserId(value=row.user_id),
            endpoint=row.endpoint,
            request_hash=row.request_hash,
            status=IdempotencyStatus(row.status),
            expires_at=row.expires_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
            response_body_hash=row.response_body_hash,
            result_reservation_id=(
                ReservationId(value=row.result_reservation_id)
                if row.result_reservation_id is not None
                else None
            ),
        )
        return None if record.is_expired(now) else record

    def mark_completed(
        self,
        key: IdempotencyKey,
        user_id: UserId,
        response_body_hash: str,
        result_reservation_id: ReservationId,
        now: datetime,
    ) -> None:
        with _translate_errors("failed to update idempotency key status"):
            updated = orm.IdempotencyKey.objects.filter(
                key=key.value,
                user_id=user_id.value,
                status=orm.IdempotencyKey.Status.PROCESSING,
            ).update(
                status=orm.IdempotencyKey.Status.COMPLETED,
                response_body_hash=response_body_hash,
                result_reservation_id=result_reservation_id.value,
                updated_at=now,
            )
        if updated == 0:
            logger.error(
                "Repository error: idempotency key not in processing state",
                extra={"kind": StoreErrorKind.NOT_FOUND.value},
            )
            raise StoreError(StoreErrorKind.NOT_FOUND, "idempotency key not in processing state")

    def release(self, key: IdempotencyKey, user_id: UserId) -> None:
        with _translate_errors("failed to release idempotency key"):
            orm.IdempotencyKey.objects.filter(
                key=key.value,
                user_id=user_id.value,
                status=orm.IdempotencyKey.Status.PROCESSING,
            ).delete()

    def delete_expired(self, now: datetime) -> int:
        with _translate_errors("failed to delete expired idempotency keys"):
            deleted, _ = orm.IdempotencyKey.objects.filter(expires_at__lte=now).delete()
        return deleted


class DjangoNotificationStore(NotificationStore):
    def create_job(self, kind: str, topic: str, payload: dict[str, Any], run_at: datetime) -> None:
        with _translate_errors("failed to create notification job"):
            orm.NotificationJob.objects.create(
                kind=kind, topic=topic, payload=payload, run_at=run_at
            )


class DjangoTransactionManager(TransactionManager):
    def atomic(self) -> AbstractContextManager[None]:
        return self._atomic()

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        with _translate_errors("transaction failed"), transaction.atomic():
            yield
