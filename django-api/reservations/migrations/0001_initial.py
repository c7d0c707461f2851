import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Resource",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("lead_time_min", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Coupon",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(max_length=20, unique=True)),
                ("amount_off_cents", models.IntegerField(blank=True, null=True)),
                ("percent_off", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("valid_from", models.DateTimeField(blank=True, null=True)),
                ("valid_to", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_off_cents__isnull", True), ("amount_off_cents__gte", 0), _connector="OR"),
                        name="coupon_amount_off_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("percent_off__isnull", True),
                            models.Q(("percent_off__gte", 0), ("percent_off__lte", 100)),
                            _connector="OR",
                        ),
                        name="coupon_percent_off_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="NotificationJob",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("kind", models.CharField(choices=[("email", "Email"), ("webhook", "Webhook")], max_length=16)),
                ("topic", models.CharField(default="reservation_created", max_length=64)),
                ("payload", models.JSONField()),
                ("run_at", models.DateTimeField()),
                ("attempts", models.IntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[("queued", "Queued"), ("done", "Done"), ("error", "Error")],
                        default="queued",
                        max_length=16,
                    ),
                ),
                ("last_error", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status", "run_at"], name="notification_status_run_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Reservation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("slot_start", models.DateTimeField()),
                ("slot_end", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("confirmed", "Confirmed"), ("canceled", "Canceled")],
                        default="confirmed",
                        max_length=16,
                    ),
                ),
                ("price_cents", models.IntegerField(default=0)),
                ("note", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
                (
                    "coupon",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="reservations.coupon",
                    ),
                ),
                (
                    "resource",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="reservations.resource",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reservations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["resource", "slot_start"], name="reservation_resource_slot_idx"),
                    models.Index(fields=["user", "-created_at"], name="reservation_user_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("slot_start__lt", models.F("slot_end"))),
                        name="reservation_slot_start_before_end",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("price_cents__gte", 0)),
                        name="reservation_price_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("status__in", ["confirmed", "canceled"])),
                        name="reservation_status_valid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="IdempotencyKey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.UUIDField()),
                ("endpoint", models.CharField(max_length=255)),
                ("request_hash", models.CharField(max_length=64)),
                ("response_body_hash", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("processing", "Processing"), ("completed", "Completed")],
                        default="processing",
                        max_length=16,
                    ),
                ),
                ("expires_at", models.DateTimeField()),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
                (
                    "result_reservation",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="reservations.reservation",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="idempotency_keys",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["expires_at"], name="idempotency_expires_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("key", "user"), name="idempotency_key_user_unique"),
                ],
            },
        ),
    ]
