"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Writes that belong to the
reservation transaction are issued inside TransactionManager.atomic().
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any

from reservations.domain import (
    Coupon,
    IdempotencyKey,
    IdempotencyRecord,
    Reservation,
    ReservationId,
    ReservationListItem,
    ReservationView,
    Resource,
    ResourceId,
    UserId,
)


class ResourceStore(ABC):
    @abstractmethod
    def find_by_id(self, resource_id: ResourceId) -> Resource | None:
        """Return a resource by ID, or None if not found."""
        ...


class CouponStore(ABC):
    @abstractmethod
    def find_by_code(self, code: str) -> Coupon | None:
        """Return a coupon by code (case-insensitive), or None if not found."""
        ...


class ReservationStore(ABC):
    """Interface for reservation persistence operations."""

    @abstractmethod
    def create(self, reservation: Reservation) -> ReservationView:
        """Insert a reservation and return its view.

        Raises:
            StoreError: CONFLICT when the slot overlaps an active reservation
                on the same resource.
        """
        ...

    @abstractmethod
    def find_by_id(self, reservation_id: ReservationId) -> ReservationView | None:
        """Return a reservation view by ID, or None if not found."""
        ...

    @abstractmethod
    def find_by_user_id(self, user_id: UserId) -> list[ReservationListItem]:
        """Return a user's reservations ordered by created_at descending."""
        ...

    @abstractmethod
    def get(self, reservation_id: ReservationId) -> Reservation | None:
        """Return the reservation aggregate, or None if not found."""
        ...


class IdempotencyStore(ABC):
    """Interface for the idempotency ledger."""

    @abstractmethod
    def try_insert(
        self,
        key: IdempotencyKey,
        user_id: UserId,
        endpoint: str,
        request_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> bool:
        """Claim (key, user) in `processing` state if no live record exists.

        Must be a single conditional insert; an existing live record is left
        untouched and no error is raised. Records expired at `now` are
        replaced. Returns True if this call created the record.
        """
        ...

    @abstractmethod
    def get(self, key: IdempotencyKey, user_id: UserId, now: datetime) -> IdempotencyRecord | None:
        """Return the live record, or None if absent or expired at `now`."""
        ...

    @abstractmethod
    def mark_completed(
        self,
        key: IdempotencyKey,
        user_id: UserId,
        response_body_hash: str,
        result_reservation_id: ReservationId,
        now: datetime,
    ) -> None:
        """Move a processing record to completed.

        Raises:
            StoreError: NOT_FOUND if no processing record exists.
        """
        ...

    @abstractmethod
    def release(self, key: IdempotencyKey, user_id: UserId) -> None:
        """Delete a processing record so the key can be retried."""
        ...

    @abstractmethod
    def delete_expired(self, now: datetime) -> int:
        """Delete records expired at `now` and return how many were removed."""
        ...


class NotificationStore(ABC):
    @abstractmethod
    def create_job(self, kind: str, topic: str, payload: dict[str, Any], run_at: datetime) -> None:
        """Queue a notification job."""
        ...


class TransactionManager(ABC):
    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Scope in which all store writes commit together or roll back together."""
        ...
