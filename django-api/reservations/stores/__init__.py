from reservations.stores.errors import StoreError, StoreErrorKind
from reservations.stores.interfaces import (
    CouponStore,
    IdempotencyStore,
    NotificationStore,
    ReservationStore,
    ResourceStore,
    TransactionManager,
)

__all__ = [
    "StoreError",
    "StoreErrorKind",
    "CouponStore",
    "IdempotencyStore",
    "NotificationStore",
    "ReservationStore",
    "ResourceStore",
    "TransactionManager",
]
