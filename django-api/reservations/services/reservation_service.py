"""Reservation service - all business logic lives here.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

Creating a reservation runs the idempotency claim first, builds the aggregate
without I/O, then writes the reservation, its notification job and the
idempotency completion in one transaction.
"""

import dataclasses
import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from reservations.domain import (
    Clock,
    Coupon,
    CouponCode,
    IdempotencyKey,
    IdempotencyRecord,
    IdempotencyStatus,
    Note,
    ReservationFactory,
    ReservationId,
    ReservationListItem,
    ReservationView,
    Resource,
    ResourceId,
    TimeSlot,
    UserId,
)
from reservations.domain.errors import (
    CouponNotFoundError,
    DatabaseOperationError,
    DomainError,
    DuplicateReservationError,
    IdempotencyKeyNotFoundError,
    IdempotencyStateError,
    Phase,
    ReservationConflictError,
    ReservationNotFoundError,
    ResourceNotFoundError,
    StorageConstraintError,
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

CREATE_ENDPOINT = "POST /reservations"
NOTIFICATION_KIND = "email"
NOTIFICATION_TOPIC = "reservation_created"
DEFAULT_IDEMPOTENCY_TTL = timedelta(hours=24)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _digest(data: dict[str, Any]) -> str:
    body = json.dumps(data, default=_json_default, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CreateReservationCommand:
    """Validated request body for creating a reservation."""

    resource_id: str
    start_time: datetime
    end_time: datetime
    coupon_code: str | None = None
    note: str | None = None

    def normalized_coupon_code(self) -> str | None:
        if self.coupon_code is None:
            return None
        code = self.coupon_code.strip()
        return code or None

    def fingerprint(self) -> str:
        """SHA-256 of the normalized request body."""
        return _digest(
            {
                "resource_id": str(self.resource_id).strip().lower(),
                "start_time": self.start_time,
                "end_time": self.end_time,
                "coupon_code": (self.normalized_coupon_code() or "").upper() or None,
                "note": self.note.strip() if self.note is not None else None,
            }
        )


class CreateOutcome(Enum):
    CREATED = "created"
    REPLAYED = "replayed"
    IN_PROGRESS = "in_progress"


@dataclass(frozen=True)
class CreateReservationResult:
    """Outcome of create_reservation.

    IN_PROGRESS carries no reservation: an identical request holding the same
    idempotency key has not committed yet.
    """

    outcome: CreateOutcome
    reservation: ReservationView | None = None

    @property
    def replayed(self) -> bool:
        return self.outcome is CreateOutcome.REPLAYED

    @property
    def in_progress(self) -> bool:
        return self.outcome is CreateOutcome.IN_PROGRESS


class ReservationService:
    """Service for reservation creation and lookup."""

    def __init__(
        self,
        *,
        resources: ResourceStore,
        coupons: CouponStore,
        reservations: ReservationStore,
        idempotency: IdempotencyStore,
        notifications: NotificationStore,
        transactions: TransactionManager,
        factory: ReservationFactory,
        clock: Clock,
        idempotency_ttl: timedelta = DEFAULT_IDEMPOTENCY_TTL,
    ) -> None:
        self._resources = resources
        self._coupons = coupons
        self._reservations = reservations
        self._idempotency = idempotency
        self._notifications = notifications
        self._transactions = transactions
        self._factory = factory
        self._clock = clock
        self._idempotency_ttl = idempotency_ttl

    def create_reservation(
        self,
        command: CreateReservationCommand,
        user_id: UserId,
        idempotency_key: IdempotencyKey,
    ) -> CreateReservationResult:
        """Create a reservation at most once per (idempotency key, user).

        Raises:
            DuplicateReservationError: If the key was used for a different request.
            ResourceNotFoundError: If the resource does not exist.
            CouponNotFoundError: If the coupon code is unknown.
            InvalidCouponError: If the coupon is outside its validity window.
            LeadTimeNotMetError: If the slot starts too soon.
            ReservationConflictError: If the slot overlaps an active reservation.
            DatabaseOperationError: On any other storage failure.
        """
        request_hash = command.fingerprint()
        now = self._clock.now()

        prior = self._claim(idempotency_key, user_id, request_hash, now)
        if prior is not None:
            return prior

        try:
            view = self._create_new(command, user_id, idempotency_key, now)
        except Exception:
            self._release_claim(idempotency_key, user_id)
            raise

        logger.info(
            "Reservation created",
            extra={"reservation_id": str(view.id), "user_id": user_id.value},
        )
        return CreateReservationResult(outcome=CreateOutcome.CREATED, reservation=view)

    def get_reservation(
        self, reservation_id: str, actor_id: UserId, actor_is_staff: bool = False
    ) -> ReservationView:
        """Return a reservation visible to the actor.

        Raises:
            InvalidIdError: If reservation_id is not a valid UUID.
            ReservationNotFoundError: If it does not exist or belongs to another user.
        """
        rid = ReservationId.from_string(reservation_id)
        try:
            view = self._reservations.find_by_id(rid)
        except StoreError as exc:
            raise DatabaseOperationError().in_phase(Phase.DATABASE_OPERATION) from exc

        # Other users' reservations read as missing.
        if view is None or (not actor_is_staff and view.user_id != actor_id.value):
            raise ReservationNotFoundError(reservation_id)
        return view

    def list_user_reservations(self, user_id: UserId) -> list[ReservationListItem]:
        try:
            return self._reservations.find_by_user_id(user_id)
        except StoreError as exc:
            raise DatabaseOperationError().in_phase(Phase.DATABASE_OPERATION) from exc

    def _claim(
        self,
        key: IdempotencyKey,
        user_id: UserId,
        request_hash: str,
        now: datetime,
    ) -> CreateReservationResult | None:
        """Claim the key, or resolve what an earlier claim means for this request.

        Returns None when this call owns a fresh claim.
        """
        expires_at = now + self._idempotency_ttl
        record: IdempotencyRecord | None = None
        try:
            # A second pass covers a competing claim released between our
            # insert and our read.
            for _ in range(2):
                if self._idempotency.try_insert(
                    key, user_id, CREATE_ENDPOINT, request_hash, expires_at, now
                ):
                    return None
                record = self._idempotency.get(key, user_id, now)
                if record is not None:
                    break
        except StoreError as exc:
            raise DatabaseOperationError().in_phase(Phase.IDEMPOTENCY_CHECK) from exc

        if record is None:
            raise IdempotencyKeyNotFoundError().in_phase(Phase.IDEMPOTENCY_CHECK)

        if record.status is IdempotencyStatus.COMPLETED:
            return self._replay(record)

        if record.request_hash != request_hash:
            raise DuplicateReservationError().in_phase(Phase.IDEMPOTENCY_CHECK)

        logger.info(
            "Idempotent request still in progress",
            extra={"idempotency_key": str(key), "user_id": user_id.value},
        )
        return CreateReservationResult(outcome=CreateOutcome.IN_PROGRESS)

    def _replay(self, record: IdempotencyRecord) -> CreateReservationResult:
        if record.result_reservation_id is None:
            logger.error(
                "Completed idempotency record has no result reservation",
                extra={"idempotency_key": str(record.key), "user_id": record.user_id.value},
            )
            raise IdempotencyStateError(
                "Completed request missing result reservation ID"
            ).in_phase(Phase.IDEMPOTENCY_CHECK)

        try:
            view = self._reservations.find_by_id(record.result_reservation_id)
        except StoreError as exc:
            raise DatabaseOperationError().in_phase(Phase.IDEMPOTENCY_CHECK) from exc
        if view is None:
            raise ReservationNotFoundError(str(record.result_reservation_id)).in_phase(
                Phase.IDEMPOTENCY_CHECK
            )

        logger.info(
            "Replaying completed reservation request",
            extra={"reservation_id": str(view.id), "user_id": record.user_id.value},
        )
        return CreateReservationResult(outcome=CreateOutcome.REPLAYED, reservation=view)

    def _release_claim(self, key: IdempotencyKey, user_id: UserId) -> None:
        try:
            self._idempotency.release(key, user_id)
        except StoreError:
            logger.warning(
                "Failed to release idempotency key",
                extra={"idempotency_key": str(key), "user_id": user_id.value},
                exc_info=True,
            )

    def _create_new(
        self,
        command: CreateReservationCommand,
        user_id: UserId,
        key: IdempotencyKey,
        now: datetime,
    ) -> ReservationView:
        try:
            resource = self._load_resource(command.resource_id)
            coupon = self._load_coupon(command.normalized_coupon_code(), now)
            reservation = self._factory.create_reservation(
                resource=resource,
                user_id=user_id,
                time_slot=TimeSlot(start=command.start_time, end=command.end_time),
                coupon=coupon,
                note=Note(command.note or ""),
                now=now,
            )
        except DomainError as exc:
            if exc.phase is None:
                exc.in_phase(Phase.DOMAIN_VALIDATION)
            raise

        try:
            with self._transactions.atomic():
                view = self._reservations.create(reservation)
                self._notifications.create_job(
                    NOTIFICATION_KIND,
                    NOTIFICATION_TOPIC,
                    self._notification_payload(view),
                    now,
                )
                self._idempotency.mark_completed(
                    key, user_id, self._response_hash(view), reservation.id, now
                )
        except StoreError as exc:
            if exc.is_kind(StoreErrorKind.CONFLICT):
                logger.info(
                    "Reservation slot conflict",
                    extra={
                        "resource_id": str(reservation.resource_id),
                        "slot": reservation.time_slot.to_range_literal(),
                    },
                )
                raise ReservationConflictError().in_phase(Phase.DATABASE_OPERATION) from exc
            if exc.kind in (StoreErrorKind.DUPLICATE_KEY, StoreErrorKind.FOREIGN_KEY_VIOLATED):
                logger.warning("Reservation write violated a constraint", exc_info=True)
                raise StorageConstraintError().in_phase(Phase.DATABASE_OPERATION) from exc
            logger.exception("Reservation transaction failed")
            raise DatabaseOperationError().in_phase(Phase.DATABASE_OPERATION) from exc

        return view

    def _load_resource(self, raw_id: str) -> Resource:
        resource_id = ResourceId.from_string(raw_id)
        try:
            resource = self._resources.find_by_id(resource_id)
        except StoreError as exc:
            raise DatabaseOperationError().in_phase(Phase.DATABASE_OPERATION) from exc
        if resource is None:
            raise ResourceNotFoundError(str(resource_id))
        return resource

    def _load_coupon(self, raw_code: str | None, now: datetime) -> Coupon | None:
        if raw_code is None:
            return None
        code = CouponCode(raw_code)
        try:
            coupon = self._coupons.find_by_code(code.value)
        except StoreError as exc:
            raise DatabaseOperationError().in_phase(Phase.DATABASE_OPERATION) from exc
        if coupon is None:
            raise CouponNotFoundError(code.value)
        coupon.validate_usage(now)
        return coupon

    @staticmethod
    def _notification_payload(view: ReservationView) -> dict[str, Any]:
        return {
            "reservation_id": str(view.id),
            "user_email": view.user_email,
            "resource_name": view.resource_name,
            "slot": view.slot.to_range_literal(),
        }

    @staticmethod
    def _response_hash(view: ReservationView) -> str:
        return _digest(dataclasses.asdict(view))
