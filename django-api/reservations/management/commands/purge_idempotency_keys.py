"""Delete idempotency ledger rows whose TTL has passed."""

from django.core.management.base import BaseCommand, CommandError

from reservations.domain import SystemClock
from reservations.stores import StoreError
from reservations.stores.django_store import DjangoIdempotencyStore


class Command(BaseCommand):
    help = "Delete expired idempotency keys."

    def handle(self, *args, **options):
        try:
            deleted = DjangoIdempotencyStore().delete_expired(SystemClock().now())
        except StoreError as exc:
            raise CommandError(f"Failed to purge idempotency keys: {exc}") from exc
        self.stdout.write(f"Deleted {deleted} expired idempotency key(s).")
