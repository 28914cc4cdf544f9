from __future__ import annotations
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from seat_billing.persistence.types import SubscriptionRecord


class InMemorySubscriptionStore:
    """
    Dict-backed store for tests/local runs. Mirrors SqlSubscriptionStore.

    - `updates` keeps every (subscription_id, current_seats) write, in order.
    - `fail_on_get` makes lookups raise, the way a broken DB connection would.
    """

    def __init__(self, records: Iterable[SubscriptionRecord] = ()):
        self.records: Dict[str, SubscriptionRecord] = {r.id: r for r in records}
        self.updates: List[Tuple[str, int]] = []
        self.fail_on_get: Optional[Exception] = None

    def add(self, record: SubscriptionRecord) -> SubscriptionRecord:
        self.records[record.id] = record
        return record

    async def get(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        if self.fail_on_get is not None:
            raise self.fail_on_get
        return self.records.get(subscription_id)

    async def update_seats(self, subscription_id: str, current_seats: int) -> None:
        current = self.records.get(subscription_id)
        if current is None:
            raise LookupError(f"Subscription not found: {subscription_id}")
        self.records[subscription_id] = replace(current, current_seats=current_seats)
        self.updates.append((subscription_id, current_seats))
