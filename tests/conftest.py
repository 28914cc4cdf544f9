import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from seat_billing.engine.seat_manager import SeatManager
from seat_billing.payments.fake_provider import FakeBillingProvider
from seat_billing.persistence.memory import InMemorySubscriptionStore
from seat_billing.persistence.types import SubscriptionRecord

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
YEARLY_PRICE_PER_SEAT = 1200.0


def make_sub(**overrides) -> SubscriptionRecord:
    fields = dict(
        id="sub-123",
        billing_type="usage_based",
        current_seats=6,
        lemonsqueezy_subscription_item_id="item-456",
        lemonsqueezy_subscription_id="lemon-sub-789",
        organization_id="org-789",
    )
    fields.update(overrides)
    return SubscriptionRecord(**fields)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    return InMemorySubscriptionStore()


@pytest.fixture
def billing():
    provider = FakeBillingProvider()
    provider.set_renewal("lemon-sub-789", NOW + timedelta(days=183))
    return provider


@pytest.fixture
def manager(store, billing, now):
    return SeatManager(
        store=store,
        billing=billing,
        yearly_price_per_seat=YEARLY_PRICE_PER_SEAT,
        clock=lambda: now,
    )
