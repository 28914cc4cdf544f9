# seat_billing/core/deps.py
from functools import lru_cache
from collections.abc import AsyncGenerator
from fastapi import Depends
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from seat_billing.core.settings import settings
from seat_billing.engine.seat_manager import SeatManager
from seat_billing.payments.fake_provider import FakeBillingProvider
from seat_billing.payments.lemonsqueezy_provider import LemonSqueezyProvider
from seat_billing.persistence.repo import SqlSubscriptionStore

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session

@lru_cache(maxsize=1)
def _billing_singleton():
    if settings.BILLING_BACKEND == "fake" or not settings.LEMONSQUEEZY_API_KEY:
        return FakeBillingProvider()
    return LemonSqueezyProvider(
        api_key=settings.LEMONSQUEEZY_API_KEY,
        base_url=settings.LEMONSQUEEZY_API_URL,
        timeout=settings.LEMONSQUEEZY_TIMEOUT_SECONDS,
        max_retries=settings.LEMONSQUEEZY_MAX_RETRIES,
        retry_delay=settings.LEMONSQUEEZY_RETRY_DELAY_SECONDS,
    )

def get_billing_provider():
    # FastAPI will call this each request, but we return the cached singleton
    return _billing_singleton()

def get_seat_manager(
    db: AsyncSession = Depends(get_db),
    billing = Depends(get_billing_provider),
) -> SeatManager:
    return SeatManager(
        store=SqlSubscriptionStore(db),
        billing=billing,
        yearly_price_per_seat=settings.YEARLY_PRICE_PER_SEAT,
    )
