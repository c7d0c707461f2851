from reservations.services.reservation_service import (
    CreateOutcome,
    CreateReservationCommand,
    CreateReservationResult,
    ReservationService,
)

__all__ = [
    "CreateOutcome",
    "CreateReservationCommand",
    "CreateReservationResult",
    "ReservationService",
]
