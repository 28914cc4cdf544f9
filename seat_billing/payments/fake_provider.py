# seat_billing/payments/fake_provider.py
from __future__ import annotations
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime, timedelta, timezone

from seat_billing.engine.errors import BillingAPIError
from seat_billing.payments.types import UsageAction


class FakeBillingProvider:
    """
    In-memory, protocol-compliant fake for tests/local runs.
    Mirrors the signatures in seat_billing.payments.types.BillingProvider.

    - Subscriptions: renews_at per external subscription id; unknown ids renew in 365 days.
    - Usage records / item updates: stored in-memory and echoed back JSON:API-style.
    - `calls` records every operation in order as (name, kwargs).
    - `fail(operation, status, detail)` makes the next calls to that operation raise.
    """

    def __init__(self):
        # external subscription id -> renews_at
        self.renewals: Dict[str, datetime] = {}
        # subscription item id -> quantity
        self.items: Dict[str, int] = {}
        self.usage_records: List[Dict[str, Any]] = []
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._failures: Dict[str, Tuple[int, str]] = {}
        # quantity the API "confirms"; None echoes the requested one
        self.confirmed_quantity: Optional[int] = None
        self._usage_counter: int = 0

    # ----------------------- helpers -----------------------

    @staticmethod
    def _now() -> datetime:
        return datetime.now(tz=timezone.utc)

    def set_renewal(self, external_subscription_id: str, renews_at: datetime) -> None:
        self.renewals[external_subscription_id] = renews_at

    def fail(self, operation: str, status: int = 422, detail: str = "Unprocessable Entity") -> None:
        self._failures[operation] = (status, detail)

    def _maybe_fail(self, operation: str) -> None:
        failure = self._failures.get(operation)
        if failure:
            status, detail = failure
            raise BillingAPIError(f"LemonSqueezy API error ({status}): {detail}", status=status, body=detail)

    def calls_to(self, operation: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    # ------------------- subscriptions ---------------------

    async def get_subscription(self, external_subscription_id: str) -> Dict[str, Any]:
        self.calls.append(("get_subscription", {"external_subscription_id": external_subscription_id}))
        self._maybe_fail("get_subscription")
        renews_at = self.renewals.get(external_subscription_id) or (self._now() + timedelta(days=365))
        return {
            "data": {
                "type": "subscriptions",
                "id": external_subscription_id,
                "attributes": {
                    "status": "active",
                    "renews_at": renews_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
                },
            }
        }

    # ------------------- usage records ---------------------

    async def create_usage_record(
        self, subscription_item_id: str, *, quantity: int, action: UsageAction = "set"
    ) -> Dict[str, Any]:
        self.calls.append(
            ("create_usage_record", {"subscription_item_id": subscription_item_id, "quantity": quantity, "action": action})
        )
        self._maybe_fail("create_usage_record")
        self._usage_counter += 1
        confirmed = quantity if self.confirmed_quantity is None else self.confirmed_quantity
        record = {
            "type": "usage-records",
            "id": f"usage_fake_{self._usage_counter}",
            "attributes": {
                "subscription_item_id": subscription_item_id,
                "quantity": confirmed,
                "action": action,
            },
        }
        self.usage_records.append(record)
        return {"data": record}

    # ----------------- subscription items ------------------

    async def update_subscription_item(
        self, subscription_item_id: str, *, quantity: int, invoice_immediately: bool = True
    ) -> Dict[str, Any]:
        self.calls.append(
            (
                "update_subscription_item",
                {
                    "subscription_item_id": subscription_item_id,
                    "quantity": quantity,
                    "invoice_immediately": invoice_immediately,
                },
            )
        )
        self._maybe_fail("update_subscription_item")
        confirmed = quantity if self.confirmed_quantity is None else self.confirmed_quantity
        self.items[subscription_item_id] = confirmed
        return {
            "data": {
                "type": "subscription-items",
                "id": subscription_item_id,
                "attributes": {"quantity": confirmed},
            }
        }
