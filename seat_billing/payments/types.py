# seat_billing/payments/types.py
from __future__ import annotations
from typing import Protocol, Dict, Any, Literal

UsageAction = Literal["set", "increment"]


class BillingProvider(Protocol):
    """
    Subscription billing API. Every method returns the JSON:API document
    ({"data": {...}}) and raises BillingAPIError on a non-success response.
    """

    # --- subscriptions ---
    async def get_subscription(self, external_subscription_id: str) -> Dict[str, Any]: ...

    # --- usage-based (monthly) ---
    async def create_usage_record(
        self, subscription_item_id: str, *, quantity: int, action: UsageAction = "set"
    ) -> Dict[str, Any]: ...

    # --- quantity-based (yearly) ---
    async def update_subscription_item(
        self, subscription_item_id: str, *, quantity: int, invoice_immediately: bool = True
    ) -> Dict[str, Any]: ...
