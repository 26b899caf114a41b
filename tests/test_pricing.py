"""
Tests for the pricing engine.
"""

import pytest
from datetime import datetime

from blueprints.bookings.services.pricing_service import calculate_price, get_pricing_options
from utils.errors import ValidationError


SATURDAY = '2030-06-01'
MONDAY = '2030-06-03'


def window(day, start_hour, end_hour, start_minute=0, end_minute=0):
    year, month, dom = (int(p) for p in day.split('-'))
    return (
        datetime(year, month, dom, start_hour, start_minute),
        datetime(year, month, dom, end_hour, end_minute),
    )


def hourly(**overrides):
    pricing = {'base_price': 500, 'rate_unit': 'hourly', 'tax_rate': 0, 'currency': 'INR'}
    pricing.update(overrides)
    return pricing


class TestBaseAmount:
    """Unit rates and multipliers."""

    def test_weekday_hourly(self):
        start, end = window(MONDAY, 10, 12)
        quote = calculate_price(hourly(), MONDAY, start, end)
        assert quote['base_amount'] == 1000.0
        assert quote['total_amount'] == 1000.0
        assert quote['applied_rules'] == []

    def test_weekend_multiplier(self):
        """500/hr x 2h x 1.2 on a Saturday."""
        start, end = window(SATURDAY, 10, 12)
        quote = calculate_price(hourly(weekend_multiplier=1.2), SATURDAY, start, end)
        assert quote['base_amount'] == 1200.0
        assert 'weekend' in quote['applied_rules']

    def test_weekend_multiplier_ignored_on_weekdays(self):
        start, end = window(MONDAY, 10, 12)
        quote = calculate_price(hourly(weekend_multiplier=1.2), MONDAY, start, end)
        assert quote['base_amount'] == 1000.0

    def test_peak_rated_piecewise(self):
        """Only the hour inside the peak window gets the multiplier."""
        pricing = hourly(peak_hours={'start': '17:00', 'end': '19:00', 'multiplier': 1.5})
        start, end = window(MONDAY, 16, 18)
        quote = calculate_price(pricing, MONDAY, start, end)
        assert quote['base_amount'] == 1250.0
        assert [s['amount'] for s in quote['segments']] == [500.0, 750.0]
        assert quote['applied_rules'] == ['peak']

    def test_peak_then_weekend_stack(self):
        pricing = hourly(
            peak_hours={'start': '17:00', 'end': '19:00', 'multiplier': 1.5},
            weekend_multiplier=1.2,
        )
        start, end = window(SATURDAY, 17, 18)
        quote = calculate_price(pricing, SATURDAY, start, end)
        assert quote['base_amount'] == 900.0
        assert quote['applied_rules'] == ['peak', 'weekend']

    def test_special_event_replaces_rate(self):
        pricing = hourly(special_events=[{'date': MONDAY, 'price': 800}])
        start, end = window(MONDAY, 10, 12)
        quote = calculate_price(pricing, MONDAY, start, end)
        assert quote['unit_rate'] == 800.0
        assert quote['base_amount'] == 1600.0
        assert 'special_event' in quote['applied_rules']

    def test_partial_hours_are_prorated(self):
        start, end = window(MONDAY, 10, 11, end_minute=30)
        quote = calculate_price(hourly(), MONDAY, start, end)
        assert quote['base_amount'] == 750.0


class TestRateUnits:
    """Time blocks, daily rate and monthly pass."""

    def _block_pricing(self):
        return hourly(
            rate_unit='time_block',
            time_blocks=[{'title': 'Half day', 'duration_minutes': 240, 'price': 1800}],
        )

    def test_time_block_exact_match(self):
        start, end = window(MONDAY, 10, 14)
        quote = calculate_price(self._block_pricing(), MONDAY, start, end)
        assert quote['base_amount'] == 1800.0
        assert quote['time_block']['title'] == 'Half day'
        assert 'time_block' in quote['applied_rules']

    def test_time_block_drops_multipliers(self):
        """A matched block is a flat price even on a weekend."""
        pricing = self._block_pricing()
        pricing['weekend_multiplier'] = 1.5
        start, end = window(SATURDAY, 10, 14)
        quote = calculate_price(pricing, SATURDAY, start, end)
        assert quote['base_amount'] == 1800.0
        assert quote['applied_rules'] == ['time_block']
        assert quote['segments'] == []

    def test_time_block_not_prorated(self):
        """A shorter window falls back to the hourly rate."""
        start, end = window(MONDAY, 10, 13)
        quote = calculate_price(self._block_pricing(), MONDAY, start, end)
        assert quote['base_amount'] == 1500.0
        assert quote['time_block'] is None

    def test_daily_rate_per_started_day(self):
        pricing = hourly(rate_unit='daily', base_price=3000)
        start, end = window(MONDAY, 10, 12)
        quote = calculate_price(pricing, MONDAY, start, end)
        assert quote['base_amount'] == 3000.0

    def test_monthly_pass_ignores_multipliers(self):
        pricing = hourly(rate_unit='monthly_pass', weekend_multiplier=1.2, monthly_pass={'price': 15000})
        start, end = window(SATURDAY, 9, 18)
        quote = calculate_price(pricing, SATURDAY, start, end)
        assert quote['base_amount'] == 15000.0
        assert quote['applied_rules'] == ['monthly_pass']

    def test_monthly_pass_without_terms(self):
        start, end = window(MONDAY, 10, 12)
        with pytest.raises(ValidationError):
            calculate_price(hourly(rate_unit='monthly_pass'), MONDAY, start, end)

    def test_unknown_rate_unit(self):
        start, end = window(MONDAY, 10, 12)
        with pytest.raises(ValidationError) as exc_info:
            calculate_price(hourly(rate_unit='weekly'), MONDAY, start, end)
        assert exc_info.value.code == 'invalid_pricing'


class TestFeesDiscountsTaxes:
    """Fees, promo discounts and taxes."""

    def test_full_breakdown(self):
        """Base 1200, 10% capped at 100, 18% tax on 1100, setup 200, deposit 500."""
        pricing = hourly(weekend_multiplier=1.2, tax_rate=18, setup_fee=200, security_deposit=500)
        promo = {'code': 'SAVE10', 'discount_type': 'percentage', 'value': 10, 'max_discount_amount': 100}
        start, end = window(SATURDAY, 10, 12)

        quote = calculate_price(pricing, SATURDAY, start, end, promo=promo)

        assert quote['base_amount'] == 1200.0
        assert quote['discount_amount'] == 100.0
        assert quote['taxes'] == 198.0
        assert quote['setup_fee'] == 200.0
        assert quote['total_amount'] == 1498.0
        assert quote['security_deposit'] == 500.0
        assert quote['amount_with_deposit'] == 1998.0
        assert quote['promo_code'] == 'SAVE10'
        assert quote['discounts'][0]['amount'] == 100.0

    def test_fixed_discount(self):
        promo = {'code': 'FLAT300', 'discount_type': 'fixed', 'value': 300}
        start, end = window(MONDAY, 10, 12)
        quote = calculate_price(hourly(), MONDAY, start, end, promo=promo)
        assert quote['discount_amount'] == 300.0
        assert quote['total_amount'] == 700.0

    def test_fixed_discount_never_exceeds_base(self):
        promo = {'code': 'FLAT5000', 'discount_type': 'fixed', 'value': 5000}
        start, end = window(MONDAY, 10, 12)
        quote = calculate_price(hourly(setup_fee=200), MONDAY, start, end, promo=promo)
        assert quote['discount_amount'] == 1000.0
        assert quote['total_amount'] == 200.0

    def test_min_order_not_met(self):
        promo = {'code': 'BIG', 'discount_type': 'percentage', 'value': 10, 'min_order_amount': 2000}
        start, end = window(MONDAY, 10, 12)
        quote = calculate_price(hourly(), MONDAY, start, end, promo=promo)
        assert quote['discount_amount'] == 0.0
        assert quote['promo_code'] is None
        assert quote['promo_rejected_reason'] == 'min_order_not_met'
        assert quote['discounts'] == []

    def test_default_tax_rate_used_when_space_sets_none(self):
        pricing = {'base_price': 500, 'rate_unit': 'hourly'}
        start, end = window(MONDAY, 10, 12)
        quote = calculate_price(pricing, MONDAY, start, end, default_tax_rate=18, default_currency='USD')
        assert quote['taxes'] == 180.0
        assert quote['currency'] == 'USD'

    def test_rounds_half_up_once(self):
        start, end = window(MONDAY, 10, 11)
        quote = calculate_price(hourly(base_price=2.345), MONDAY, start, end)
        assert quote['base_amount'] == 2.35

    def test_fractional_amounts_round_at_the_end(self):
        """20 minutes at 100/hr with 18% tax: 33.333... + 6.0 = 39.33."""
        start, end = window(MONDAY, 10, 10, end_minute=20)
        quote = calculate_price(hourly(base_price=100, tax_rate=18), MONDAY, start, end)
        assert quote['base_amount'] == 33.33
        assert quote['taxes'] == 6.0
        assert quote['total_amount'] == 39.33

    def test_empty_window_rejected(self):
        start, _ = window(MONDAY, 10, 12)
        with pytest.raises(ValidationError):
            calculate_price(hourly(), MONDAY, start, start)


class TestIdempotency:
    """Quoting has no side effects."""

    def test_same_inputs_same_breakdown(self):
        pricing = hourly(
            weekend_multiplier=1.2,
            peak_hours={'start': '17:00', 'end': '18:00', 'multiplier': 1.25},
            tax_rate=18,
            setup_fee=150,
        )
        promo = {'code': 'SAVE10', 'discount_type': 'percentage', 'value': 10}
        start, end = window(SATURDAY, 15, 18)
        first = calculate_price(pricing, SATURDAY, start, end, promo=promo)
        second = calculate_price(pricing, SATURDAY, start, end, promo=promo)
        assert first == second

    def test_price_quote_does_not_consume_promo(self, app, space_factory, promo_factory):
        from blueprints.bookings.services.pricing_service import price_quote
        from models.promo_code import get_promo_code_by_code

        space_id = space_factory()
        promo_factory('ONCE', usage_limit=1)
        now = datetime(2030, 6, 1, 8, 0)

        first = price_quote(space_id, MONDAY, '10:00', '12:00', promo_code='once', now=now)
        second = price_quote(space_id, MONDAY, '10:00', '12:00', promo_code='once', now=now)

        assert first['total_amount'] == second['total_amount'] == 900.0
        assert get_promo_code_by_code('ONCE')['used_count'] == 0


class TestPricingOptions:
    """Pricing summary for a space."""

    def test_flags(self):
        space = {'pricing': hourly(weekend_multiplier=1.2, time_blocks=[{'duration_minutes': 60, 'price': 1}])}
        options = get_pricing_options(space)
        assert options['has_weekend_pricing'] is True
        assert options['has_time_blocks'] is True
        assert options['has_peak_pricing'] is False
        assert options['rate_unit'] == 'hourly'
