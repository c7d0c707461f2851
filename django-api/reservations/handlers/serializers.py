"""Serializers for reservation requests and responses.

Request serializers check input shape only. Business rules (lead time,
coupon validity, note length) are enforced by the domain.
"""

from rest_framework import serializers

from reservations.services import CreateReservationCommand


class CreateReservationRequestSerializer(serializers.Serializer):
    """Body of POST /api/reservations."""

    resource_id = serializers.UUIDField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    coupon_code = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, trim_whitespace=False
    )
    note = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, trim_whitespace=False
    )

    def to_command(self) -> CreateReservationCommand:
        data = self.validated_data
        return CreateReservationCommand(
            resource_id=str(data["resource_id"]),
            start_time=data["start_time"],
            end_time=data["end_time"],
            coupon_code=data.get("coupon_code"),
            note=data.get("note"),
        )


class ReservationSerializer(serializers.Serializer):
    """Serializer for the ReservationView read model."""

    id = serializers.UUIDField()
    resource_id = serializers.UUIDField()
    resource_name = serializers.CharField()
    user_id = serializers.IntegerField()
    user_email = serializers.CharField()
    start_time = serializers.DateTimeField(source="slot.start")
    end_time = serializers.DateTimeField(source="slot.end")
    slot = serializers.SerializerMethodField()
    status = serializers.CharField(source="status.value")
    price_cents = serializers.IntegerField()
    coupon_id = serializers.UUIDField(allow_null=True)
    coupon_code = serializers.CharField(allow_null=True)
    note = serializers.CharField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()

    def get_slot(self, obj) -> str:
        return obj.slot.to_range_literal()


class ReservationListItemSerializer(serializers.Serializer):
    """Serializer for ReservationListItem."""

    id = serializers.UUIDField()
    resource_id = serializers.UUIDField()
    resource_name = serializers.CharField()
    start_time = serializers.DateTimeField(source="slot.start")
    end_time = serializers.DateTimeField(source="slot.end")
    status = serializers.CharField(source="status.value")
    price_cents = serializers.IntegerField()
    created_at = serializers.DateTimeField()
