# seat_billing/persistence/types.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol, Optional


@dataclass(frozen=True)
class SubscriptionRecord:
    id: str
    billing_type: str
    current_seats: int
    lemonsqueezy_subscription_item_id: Optional[str] = None
    lemonsqueezy_subscription_id: Optional[str] = None
    organization_id: Optional[str] = None


class SubscriptionStore(Protocol):
    async def get(self, subscription_id: str) -> Optional[SubscriptionRecord]: ...
    async def update_seats(self, subscription_id: str, current_seats: int) -> None: ...
