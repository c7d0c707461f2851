"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from reservations.bootstrap import build_reservation_service
from reservations.domain import IdempotencyKey, UserId
from reservations.domain.errors import (
    DomainError,
    ErrorKind,
    IdempotencyInProgressError,
)
from reservations.handlers.serializers import (
    CreateReservationRequestSerializer,
    ReservationListItemSerializer,
    ReservationSerializer,
)

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"
REPLAYED_HEADER = "Idempotent-Replayed"
RETRY_AFTER_SECONDS = 1

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_response(code: str, message: str, http_status: int, **extra) -> Response:
    body = {"error": {"code": code, "message": message, **extra}}
    return Response(body, status=http_status)


def domain_error_response(error: DomainError) -> Response:
    """Map a domain error to its HTTP response."""
    http_status = _STATUS_BY_KIND[error.kind]
    if error.kind is ErrorKind.INTERNAL:
        logger.error(
            "Request failed",
            extra={"code": error.code.value, "phase": error.phase.value if error.phase else None},
        )
        return _error_response("INTERNAL_ERROR", "Internal server error", http_status)
    return _error_response(error.code.value, error.message, http_status)


def _actor(request: Request) -> UserId:
    return UserId(value=request.user.pk)


class ReservationListView(APIView):
    """Handler for GET and POST /api/reservations"""

    def get(self, request: Request) -> Response:
        service = build_reservation_service()
        try:
            items = service.list_user_reservations(_actor(request))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(ReservationListItemSerializer(items, many=True).data)

    def post(self, request: Request) -> Response:
        raw_key = request.headers.get(IDEMPOTENCY_HEADER)
        if not raw_key:
            return _error_response(
                "IDEMPOTENCY_KEY_REQUIRED",
                f"{IDEMPOTENCY_HEADER} header is required",
                status.HTTP_400_BAD_REQUEST,
            )

        serializer = CreateReservationRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return _error_response(
                "INVALID_REQUEST",
                "Request body is invalid",
                status.HTTP_400_BAD_REQUEST,
                fields=serializer.errors,
            )

        service = build_reservation_service()
        try:
            key = IdempotencyKey.from_string(raw_key.strip())
            result = service.create_reservation(serializer.to_command(), _actor(request), key)
        except DomainError as exc:
            return domain_error_response(exc)

        if result.in_progress:
            response = domain_error_response(IdempotencyInProgressError())
            response["Retry-After"] = str(RETRY_AFTER_SECONDS)
            return response

        body = ReservationSerializer(result.reservation).data
        if result.replayed:
            response = Response(body, status=status.HTTP_200_OK)
            response[REPLAYED_HEADER] = "true"
            return response
        return Response(body, status=status.HTTP_201_CREATED)


class ReservationDetailView(APIView):
    """Handler for GET /api/reservations/{reservation_id}"""

    def get(self, request: Request, reservation_id: str) -> Response:
        service = build_reservation_service()
        try:
            view = service.get_reservation(
                reservation_id, _actor(request), actor_is_staff=request.user.is_staff
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(ReservationSerializer(view).data)
