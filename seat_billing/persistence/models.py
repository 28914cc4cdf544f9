from __future__ import annotations

import uuid
from sqlalchemy import (
    Column,
    Index,
    String,
    TIMESTAMP,
    Integer,
    CheckConstraint,
    text as sqltext,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from .base import Base


# -------------------------
# Subscriptions
# -------------------------
class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    organization_id = Column(String, nullable=False, index=True)

    # 'usage_based' | 'quantity_based' | legacy values such as 'volume'
    billing_type = Column(String, nullable=False, default="usage_based")
    current_seats = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, index=True, default="active")

    lemonsqueezy_subscription_id = Column(String, nullable=True, unique=True)
    lemonsqueezy_subscription_item_id = Column(String, nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), server_default=sqltext("timezone('utc', now())"), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    __table_args__ = (
        CheckConstraint("current_seats >= 0", name="ck_subscriptions_seats_non_negative"),
        Index("ix_subs_org_status", "organization_id", "status"),
    )
