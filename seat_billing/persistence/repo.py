from __future__ import annotations
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from seat_billing.persistence.models import Subscription
from seat_billing.persistence.types import SubscriptionRecord

log = structlog.get_logger(__name__)


def _to_record(row: Subscription) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=str(row.id),
        billing_type=row.billing_type,
        current_seats=int(row.current_seats or 0),
        lemonsqueezy_subscription_item_id=row.lemonsqueezy_subscription_item_id,
        lemonsqueezy_subscription_id=row.lemonsqueezy_subscription_id,
        organization_id=row.organization_id,
    )


def _parse_id(subscription_id: str) -> Optional[UUID]:
    try:
        return UUID(str(subscription_id))
    except ValueError:
        return None


# -------------------- Subscriptions --------------------

class SqlSubscriptionStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        sub_id = _parse_id(subscription_id)
        if sub_id is None:
            return None
        res = await self.db.execute(select(Subscription).where(Subscription.id == sub_id))
        row = res.scalar_one_or_none()
        return _to_record(row) if row else None

    async def update_seats(self, subscription_id: str, current_seats: int) -> None:
        sub_id = _parse_id(subscription_id)
        if sub_id is None:
            raise LookupError(f"Subscription not found: {subscription_id}")
        res = await self.db.execute(
            update(Subscription)
            .where(Subscription.id == sub_id)
            .values(current_seats=current_seats)
        )
        if res.rowcount == 0:
            await self.db.rollback()
            raise LookupError(f"Subscription not found: {subscription_id}")
        await self.db.commit()
        log.info("subscription_seats_updated", subscription_id=subscription_id, current_seats=current_seats)
