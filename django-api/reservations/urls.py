from django.urls import path

from reservations.handlers import ReservationDetailView, ReservationListView

urlpatterns = [
    path("reservations", ReservationListView.as_view(), name="reservation-list"),
    path(
        "reservations/<str:reservation_id>",
        ReservationDetailView.as_view(),
        name="reservation-detail",
    ),
]
