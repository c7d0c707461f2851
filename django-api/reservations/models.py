"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
The no-overlap guarantee for reservations is installed by migration 0002.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q

NO_OVERLAP_CONSTRAINT = "reservations_no_overlap"


class Resource(models.Model):
    """Persistence model for bookable resources."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    lead_time_min = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Coupon(models.Model):
    """Persistence model for discount coupons."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=20, unique=True)
    amount_off_cents = models.IntegerField(null=True, blank=True)
    percent_off = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    valid_from = models.DateTimeField(null=True, blank=True)
    valid_to = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_off_cents__isnull=True) | Q(amount_off_cents__gte=0),
                name="coupon_amount_off_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(percent_off__isnull=True)
                | (Q(percent_off__gte=0) & Q(percent_off__lte=100)),
                name="coupon_percent_off_range",
            ),
        ]

    def __str__(self) -> str:
        return self.code


class Reservation(models.Model):
    """Persistence model for reservations.

    The slot is stored as two columns forming the half-open range
    [slot_start, slot_end).
    """

    class Status(models.TextChoices):
        CONFIRMED = "confirmed", "Confirmed"
        CANCELED = "canceled", "Canceled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    resource = models.ForeignKey(
        Resource, on_delete=models.PROTECT, related_name="reservations"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reservations"
    )
    slot_start = models.DateTimeField()
    slot_end = models.DateTimeField()
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.CONFIRMED
    )
    price_cents = models.IntegerField(default=0)
    coupon = models.ForeignKey(
        Coupon,
        on_delete=models.PROTECT,
        related_name="reservations",
        null=True,
        blank=True,
    )
    note = models.TextField(blank=True, default="")
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["resource", "slot_start"], name="reservation_resource_slot_idx"),
            models.Index(fields=["user", "-created_at"], name="reservation_user_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(slot_start__lt=F("slot_end")),
                name="reservation_slot_start_before_end",
            ),
            models.CheckConstraint(
                condition=Q(price_cents__gte=0),
                name="reservation_price_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(status__in=["confirmed", "canceled"]),
                name="reservation_status_valid",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.resource_id} [{self.slot_start}, {self.slot_end})"


class NotificationJob(models.Model):
    """Queued side effect created in the same transaction as its reservation."""

    class Kind(models.TextChoices):
        EMAIL = "email", "Email"
        WEBHOOK = "webhook", "Webhook"

    class Status(models.TextChoices):
        QUEUED = "queued", "Queued"
        DONE = "done", "Done"
        ERROR = "error", "Error"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind = models.CharField(max_length=16, choices=Kind.choices)
    topic = models.CharField(max_length=64, default="reservation_created")
    payload = models.JSONField()
    run_at = models.DateTimeField()
    attempts = models.IntegerField(default=0)
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.QUEUED
    )
    last_error = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "run_at"], name="notification_status_run_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.kind}:{self.topic} ({self.status})"


class IdempotencyKey(models.Model):
    """Ledger row deduplicating reservation requests per (key, user)."""

    class Status(models.TextChoices):
        PROCESSING = "processing", "Processing"
        COMPLETED = "completed", "Completed"

    key = models.UUIDField()
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="idempotency_keys"
    )
    endpoint = models.CharField(max_length=255)
    request_hash = models.CharField(max_length=64)
    response_body_hash = models.CharField(max_length=64, null=True, blank=True)
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.PROCESSING
    )
    result_reservation = models.ForeignKey(
        Reservation,
        on_delete=models.PROTECT,
        related_name="+",
        null=True,
        blank=True,
    )
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["key", "user"], name="idempotency_key_user_unique"),
        ]
        indexes = [
            models.Index(fields=["expires_at"], name="idempotency_expires_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.key} ({self.status})"
