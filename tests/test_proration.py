from datetime import datetime, timedelta, timezone

import pytest

from seat_billing.engine.errors import BillingAPIError, ConfigurationError, NotFoundError
from seat_billing.engine.proration import LinearProration, days_until, parse_renews_at
from conftest import make_sub, NOW


class TestDaysUntil:
    def test_exact_days(self):
        assert days_until(NOW + timedelta(days=183), NOW) == 183

    def test_rounds_to_nearest_day(self):
        assert days_until(NOW + timedelta(days=182, hours=13), NOW) == 183
        assert days_until(NOW + timedelta(days=183, hours=11), NOW) == 183

    def test_past_renewal_is_zero(self):
        assert days_until(NOW - timedelta(days=3), NOW) == 0

    def test_naive_datetimes_are_utc(self):
        naive = datetime(2026, 1, 11, 12, 0)
        assert days_until(naive, NOW) == 10


class TestParseRenewsAt:
    def test_zulu_suffix(self):
        assert parse_renews_at("2026-07-03T12:00:00.000000Z") == datetime(2026, 7, 3, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "next tuesday", 42])
    def test_invalid(self, value):
        with pytest.raises(BillingAPIError):
            parse_renews_at(value)


class TestLinearProration:
    def test_formula(self):
        amount = LinearProration().amount(seats_added=2, price_per_seat=1200, days_remaining=183)
        assert amount == pytest.approx(2 * 1200 * 183 / 365)

    def test_linear_in_seats(self):
        p = LinearProration()
        one = p.amount(seats_added=3, price_per_seat=1200, days_remaining=100)
        two = p.amount(seats_added=6, price_per_seat=1200, days_remaining=100)
        assert two == pytest.approx(2 * one)

    def test_linear_in_days(self):
        p = LinearProration()
        one = p.amount(seats_added=3, price_per_seat=1200, days_remaining=90)
        two = p.amount(seats_added=3, price_per_seat=1200, days_remaining=180)
        assert two == pytest.approx(2 * one)

    def test_full_year_is_full_price(self):
        assert LinearProration().amount(seats_added=1, price_per_seat=1200, days_remaining=365) == pytest.approx(1200)

    def test_nothing_added_costs_nothing(self):
        assert LinearProration().amount(seats_added=0, price_per_seat=1200, days_remaining=200) == 0

    def test_total_days_must_be_positive(self):
        with pytest.raises(ValueError):
            LinearProration(total_days=0)


class TestCalculateProration:
    @pytest.mark.asyncio
    async def test_quantity_based_increase(self, manager, store, billing):
        store.add(make_sub(billing_type="quantity_based", current_seats=6))

        result = await manager.calculate_proration("sub-123", 8)

        assert result.seatsAdded == 2
        assert result.daysRemaining == 183
        assert result.amount == pytest.approx(1203.29, abs=0.01)
        assert result.yearlyPricePerSeat == 1200
        assert result.message == "2 seats for 183 days"
        assert billing.calls_to("get_subscription") == [{"external_subscription_id": "lemon-sub-789"}]

    @pytest.mark.asyncio
    async def test_single_seat_message(self, manager, store):
        store.add(make_sub(billing_type="quantity_based", current_seats=6))

        result = await manager.calculate_proration("sub-123", 7)

        assert result.message == "1 seat for 183 days"

    @pytest.mark.asyncio
    async def test_doubling_seats_doubles_amount(self, manager, store):
        store.add(make_sub(billing_type="quantity_based", current_seats=6))

        two = await manager.calculate_proration("sub-123", 8)
        four = await manager.calculate_proration("sub-123", 10)

        assert four.amount == pytest.approx(2 * two.amount, abs=0.01)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("new_quantity", [1, 6, 50])
    async def test_usage_based_never_prorates(self, manager, store, billing, new_quantity):
        store.add(make_sub(billing_type="usage_based", current_seats=6))

        result = await manager.calculate_proration("sub-123", new_quantity)

        assert result.amount == 0
        assert result.seatsAdded == 0
        assert "not applicable" in result.message
        assert billing.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("new_quantity", [0, 5, 10])
    async def test_no_increase_is_credited_at_renewal(self, manager, store, billing, new_quantity):
        store.add(make_sub(billing_type="quantity_based", current_seats=10))

        result = await manager.calculate_proration("sub-123", new_quantity)

        assert result.amount == 0
        assert result.seatsAdded == 0
        assert result.message == "Credit will be applied at next renewal"
        assert billing.calls == []

    @pytest.mark.asyncio
    async def test_missing_subscription(self, manager):
        with pytest.raises(NotFoundError):
            await manager.calculate_proration("missing", 3)

    @pytest.mark.asyncio
    async def test_missing_external_subscription_id(self, manager, store):
        store.add(make_sub(billing_type="quantity_based", lemonsqueezy_subscription_id=None))

        with pytest.raises(ConfigurationError, match="lemonsqueezy_subscription_id"):
            await manager.calculate_proration("sub-123", 9)

    @pytest.mark.asyncio
    async def test_api_failure(self, manager, store, billing):
        store.add(make_sub(billing_type="quantity_based"))
        billing.fail("get_subscription", status=401, detail="Unauthenticated")

        with pytest.raises(BillingAPIError, match="Failed to fetch subscription from LemonSqueezy") as exc_info:
            await manager.calculate_proration("sub-123", 9)
        assert exc_info.value.status == 401
