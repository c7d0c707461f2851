"""Price calculation strategies."""

from abc import ABC, abstractmethod

from reservations.domain.models import ResourcePriceContext
from reservations.domain.value_objects import TimeSlot

DEFAULT_HOURLY_RATE_CENTS = 100_000


class PriceCalculator(ABC):
    """Computes the base price of a slot before discounts."""

    @abstractmethod
    def calculate_price_cents(self, context: ResourcePriceContext, slot: TimeSlot) -> int:
        """Return the base price in cents. May be negative for a faulty strategy."""
        ...


class HourlyPriceCalculator(PriceCalculator):
    """Charges a flat hourly rate for the slot's fractional duration, truncated."""

    def __init__(self, hourly_rate_cents: int = DEFAULT_HOURLY_RATE_CENTS) -> None:
        self.hourly_rate_cents = hourly_rate_cents

    def calculate_price_cents(self, context: ResourcePriceContext, slot: TimeSlot) -> int:
        hours = slot.duration.total_seconds() / 3600
        return int(hours * self.hourly_rate_cents)
