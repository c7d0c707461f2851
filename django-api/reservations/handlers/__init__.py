from reservations.handlers.views import ReservationDetailView, ReservationListView

__all__ = ["ReservationDetailView", "ReservationListView"]
