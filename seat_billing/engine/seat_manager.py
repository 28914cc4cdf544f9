from __future__ import annotations
from typing import Any, Callable, Dict, Optional
from datetime import datetime, timezone

import structlog

from seat_billing.engine.billing_types import BillingType, ChargedAt
from seat_billing.engine.errors import (
    BillingAPIError,
    ConfigurationError,
    NoOpError,
    NotFoundError,
    UnknownBillingTypeError,
)
from seat_billing.engine.proration import LinearProration, ProrationStrategy, days_until, parse_renews_at
from seat_billing.payments.types import BillingProvider
from seat_billing.persistence.types import SubscriptionRecord, SubscriptionStore
from seat_billing.schemas.api_models import ProrationResult, SeatChangeResult

log = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _confirmed_quantity(payload: Dict[str, Any], requested: int) -> int:
    """
    Quantity echoed back by the billing API. Falls back to the requested one
    only when the response does not carry it.
    """
    attrs = ((payload or {}).get("data") or {}).get("attributes") or {}
    q = attrs.get("quantity")
    if isinstance(q, bool):
        return requested
    if isinstance(q, int):
        return q
    if isinstance(q, str) and q.isdigit():
        return int(q)
    return requested


class SeatManager:
    """
    Routes seat-count changes to the billing mechanism of the subscription:

      - usage_based (monthly): usage record with action "set", billed at end of period
      - quantity_based (yearly): line-item quantity update with an immediate,
        pro-rated invoice

    The local `current_seats` only moves after the billing API confirmed the
    change, and then to the quantity the API confirmed.

    Concurrent changes to the same subscription are not serialized here; the
    last store write wins.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        billing: BillingProvider,
        *,
        yearly_price_per_seat: float,
        proration: Optional[ProrationStrategy] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.billing = billing
        self.yearly_price_per_seat = float(yearly_price_per_seat)
        self.proration = proration or LinearProration()
        self.clock = clock

    # ---------------- helpers ----------------

    async def _load(self, subscription_id: str) -> SubscriptionRecord:
        try:
            sub = await self.store.get(subscription_id)
        except Exception as e:
            log.error("subscription_lookup_failed", subscription_id=subscription_id, error=str(e))
            raise NotFoundError(f"Subscription not found: {subscription_id}") from e
        if sub is None:
            log.warning("subscription_not_found", subscription_id=subscription_id)
            raise NotFoundError(f"Subscription not found: {subscription_id}")
        return sub

    @staticmethod
    def _require_item_id(sub: SubscriptionRecord) -> str:
        if not sub.lemonsqueezy_subscription_item_id:
            log.error("subscription_item_id_missing", subscription_id=sub.id, organization_id=sub.organization_id)
            raise ConfigurationError(
                f"Missing subscription_item_id for subscription {sub.id}. Cannot change seats."
            )
        return str(sub.lemonsqueezy_subscription_item_id)

    async def _save_seats(self, sub: SubscriptionRecord, seats: int) -> None:
        try:
            await self.store.update_seats(sub.id, seats)
        except Exception as e:
            log.error(
                "subscription_seats_save_failed",
                subscription_id=sub.id,
                current_seats=seats,
                error=str(e),
            )
            raise

    # ---------------- public operations ----------------

    async def add_seats(self, subscription_id: str, new_quantity: int) -> SeatChangeResult:
        """
        Set the subscription to `new_quantity` seats (the final count, not a delta).
        """
        return await self._change_seats("add_seats", subscription_id, new_quantity)

    async def remove_seats(self, subscription_id: str, new_quantity: int) -> SeatChangeResult:
        """
        Alias of add_seats for seat reductions; direction is not enforced.
        """
        return await self._change_seats("remove_seats", subscription_id, new_quantity)

    async def calculate_proration(self, subscription_id: str, new_quantity: int) -> ProrationResult:
        """
        Preview the immediate charge of moving to `new_quantity` seats.
        Only quantity_based subscriptions that gain seats are ever charged.
        """
        sub = await self._load(subscription_id)
        return await self._prorate(sub, new_quantity)

    # ---------------- routing ----------------

    async def _change_seats(self, operation: str, subscription_id: str, new_quantity: int) -> SeatChangeResult:
        log.info(operation, subscription_id=subscription_id, new_quantity=new_quantity)

        sub = await self._load(subscription_id)
        item_id = self._require_item_id(sub)

        if new_quantity == sub.current_seats:
            raise NoOpError("New quantity must be different from current seats")

        billing_type = BillingType.from_raw(sub.billing_type)
        if billing_type is BillingType.USAGE_BASED:
            return await self._add_seats_usage_based(sub, item_id, new_quantity)
        if billing_type is BillingType.QUANTITY_BASED:
            return await self._add_seats_quantity_based(sub, item_id, new_quantity)

        log.error("unknown_billing_type", subscription_id=sub.id, billing_type=sub.billing_type)
        raise UnknownBillingTypeError(f"Unknown billing type: {sub.billing_type}")

    async def _add_seats_usage_based(
        self, sub: SubscriptionRecord, item_id: str, new_quantity: int
    ) -> SeatChangeResult:
        log.info(
            "seats_via_usage_record",
            subscription_id=sub.id,
            organization_id=sub.organization_id,
            current_seats=sub.current_seats,
            new_quantity=new_quantity,
        )
        try:
            payload = await self.billing.create_usage_record(item_id, quantity=new_quantity, action="set")
        except BillingAPIError as e:
            log.error(
                "usage_record_failed",
                subscription_id=sub.id,
                subscription_item_id=item_id,
                status=e.status,
                error=e.body,
            )
            raise BillingAPIError(
                f"Failed to create usage record: {e.body or e.message}", status=e.status, body=e.body
            ) from e

        confirmed = _confirmed_quantity(payload, new_quantity)
        log.info(
            "usage_record_created",
            subscription_id=sub.id,
            usage_record_id=((payload or {}).get("data") or {}).get("id"),
            requested_quantity=new_quantity,
            confirmed_quantity=confirmed,
        )
        await self._save_seats(sub, confirmed)

        return SeatChangeResult(
            success=True,
            billingType=BillingType.USAGE_BASED.value,
            chargedAt=ChargedAt.END_OF_PERIOD.value,
            currentSeats=confirmed,
            message="New seats will be billed at end of current billing period",
        )

    async def _add_seats_quantity_based(
        self, sub: SubscriptionRecord, item_id: str, new_quantity: int
    ) -> SeatChangeResult:
        log.info(
            "seats_via_quantity_update",
            subscription_id=sub.id,
            organization_id=sub.organization_id,
            current_seats=sub.current_seats,
            new_quantity=new_quantity,
        )
        proration = await self._prorate(sub, new_quantity)

        try:
            payload = await self.billing.update_subscription_item(
                item_id, quantity=new_quantity, invoice_immediately=True
            )
        except BillingAPIError as e:
            log.error(
                "quantity_update_failed",
                subscription_id=sub.id,
                subscription_item_id=item_id,
                status=e.status,
                error=e.body,
            )
            raise BillingAPIError(
                f"Failed to update subscription quantity: {e.body or e.message}", status=e.status, body=e.body
            ) from e

        confirmed = _confirmed_quantity(payload, new_quantity)
        log.info(
            "quantity_updated",
            subscription_id=sub.id,
            subscription_item_id=item_id,
            requested_quantity=new_quantity,
            confirmed_quantity=confirmed,
            proration_amount=proration.amount,
        )
        await self._save_seats(sub, confirmed)

        if proration.seatsAdded > 0:
            message = f"You will be charged ${proration.amount:.2f} for {proration.daysRemaining} remaining days"
        else:
            message = proration.message

        return SeatChangeResult(
            success=True,
            billingType=BillingType.QUANTITY_BASED.value,
            chargedAt=ChargedAt.IMMEDIATELY.value,
            currentSeats=confirmed,
            message=message,
            prorationAmount=proration.amount,
            daysRemaining=proration.daysRemaining,
        )

    # ---------------- proration ----------------

    async def _prorate(self, sub: SubscriptionRecord, new_quantity: int) -> ProrationResult:
        if BillingType.from_raw(sub.billing_type) is not BillingType.QUANTITY_BASED:
            return ProrationResult(
                amount=0.0,
                seatsAdded=0,
                daysRemaining=0,
                message="Proration not applicable for usage-based subscriptions",
            )

        if new_quantity <= sub.current_seats:
            return ProrationResult(
                amount=0.0,
                seatsAdded=0,
                daysRemaining=0,
                message="Credit will be applied at next renewal",
            )

        if not sub.lemonsqueezy_subscription_id:
            raise ConfigurationError(f"Missing lemonsqueezy_subscription_id for subscription {sub.id}")

        try:
            payload = await self.billing.get_subscription(str(sub.lemonsqueezy_subscription_id))
        except BillingAPIError as e:
            raise BillingAPIError(
                "Failed to fetch subscription from LemonSqueezy", status=e.status, body=e.body
            ) from e

        attrs = ((payload or {}).get("data") or {}).get("attributes") or {}
        days_remaining = days_until(parse_renews_at(attrs.get("renews_at")), self.clock())
        seats_added = new_quantity - sub.current_seats
        raw = self.proration.amount(
            seats_added=seats_added,
            price_per_seat=self.yearly_price_per_seat,
            days_remaining=days_remaining,
        )
        amount = round(raw, 2)

        log.info(
            "proration_calculated",
            subscription_id=sub.id,
            current_seats=sub.current_seats,
            new_quantity=new_quantity,
            seats_added=seats_added,
            yearly_price_per_seat=self.yearly_price_per_seat,
            days_remaining=days_remaining,
            amount=amount,
        )
        return ProrationResult(
            amount=amount,
            seatsAdded=seats_added,
            daysRemaining=days_remaining,
            yearlyPricePerSeat=self.yearly_price_per_seat,
            message=f"{seats_added} seat{'s' if seats_added > 1 else ''} for {days_remaining} days",
        )
