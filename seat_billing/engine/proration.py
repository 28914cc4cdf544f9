from __future__ import annotations
import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from seat_billing.engine.errors import BillingAPIError

SECONDS_PER_DAY = 24 * 60 * 60
DAYS_PER_YEAR = 365


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_renews_at(value: object) -> datetime:
    """
    Parse the billing API's `renews_at` (ISO8601, usually with a trailing 'Z').
    """
    if not isinstance(value, str) or not value:
        raise BillingAPIError("Subscription response is missing renews_at")
    try:
        return _as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        raise BillingAPIError(f"Subscription renews_at is not ISO8601: {value!r}")


def days_until(renews_at: datetime, now: datetime) -> int:
    """
    Whole days between now and renewal, rounded half-up. 183.0 -> 183,
    182.6 -> 183. A renewal date in the past yields 0.
    """
    seconds = (_as_utc(renews_at) - _as_utc(now)).total_seconds()
    days = math.floor(seconds / SECONDS_PER_DAY + 0.5)
    return max(0, days)


class ProrationStrategy(ABC):
    @abstractmethod
    def amount(self, *, seats_added: int, price_per_seat: float, days_remaining: int) -> float:
        """
        Charge for `seats_added` seats over `days_remaining` days of the current term.
        Unrounded; callers round for presentation.
        """
        raise NotImplementedError


class LinearProration(ProrationStrategy):
    """
    Day-fraction of the yearly seat price, charged for the incremental seats only:

        seats_added * price_per_seat * days_remaining / total_days
    """

    def __init__(self, total_days: int = DAYS_PER_YEAR):
        if total_days <= 0:
            raise ValueError("total_days must be positive")
        self.total_days = total_days

    def amount(self, *, seats_added: int, price_per_seat: float, days_remaining: int) -> float:
        if seats_added <= 0 or days_remaining <= 0:
            return 0.0
        return (seats_added * price_per_seat * days_remaining) / self.total_days
