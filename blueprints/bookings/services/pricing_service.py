"""
Pricing Service - Business logic for booking price quotes.

Handles:
- Special-event rate overrides
- Peak-hours and weekend multipliers, rated piecewise at peak boundaries
- Fixed time-block packages and monthly passes
- Setup fee, security deposit, promo discount and taxes

Money is computed with Decimal and rounded half-up to 2 decimals once, at
the very end.
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, List, Any

from flask import current_app

from blueprints.bookings.services.promo_service import validate_promo_code
from models.space import get_space_by_id
from utils.datetime_helpers import (
    combine,
    duration_minutes,
    get_now,
    is_weekend,
    overlaps,
    parse_date,
    split_window,
    to_db_datetime,
)
from utils.errors import NotFoundError, ValidationError
from utils.validators import parse_booking_window

logger = logging.getLogger(__name__)

RATE_UNITS = ('hourly', 'daily', 'time_block', 'monthly_pass')

CENT = Decimal('0.01')
ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')


def _dec(value) -> Decimal:
    """Decimal from config values (floats go through str to stay exact)."""
    if value is None or value == '':
        return ZERO
    return Decimal(str(value))


def _money(value: Decimal) -> float:
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def _special_event_rate(pricing: dict, booking_date) -> Optional[Decimal]:
    """Rate of a dated special-event override, if one exists for the date."""
    day = parse_date(booking_date).isoformat()
    for event in pricing.get('special_events') or []:
        if str(event.get('date', ''))[:10] == day:
            return _dec(event.get('price'))
    return None


def _peak_window(pricing: dict, booking_date):
    """(start, end, multiplier) of the configured peak window or None."""
    peak = pricing.get('peak_hours')
    if not peak or not peak.get('start') or not peak.get('end'):
        return None
    return (
        combine(booking_date, peak['start']),
        combine(booking_date, peak['end']),
        _dec(peak.get('multiplier', 1)),
    )


def _matching_time_block(pricing: dict, minutes: float) -> Optional[Dict[str, Any]]:
    """Time block whose duration equals the request exactly."""
    for block in pricing.get('time_blocks') or []:
        if _dec(block.get('duration_minutes')) == _dec(minutes):
            return block
    return None


def _rate_segments(unit_rate, start, end, peak, weekend_multiplier) -> List[Dict[str, Any]]:
    """
    Price [start, end) per hour, split at peak boundaries.

    Each segment is unit_rate x hours x (peak multiplier if inside the peak
    window) x (weekend multiplier). Amounts stay unrounded.
    """
    boundaries = (peak[0], peak[1]) if peak else ()
    segments = []
    for seg_start, seg_end in split_window(start, end, boundaries):
        multiplier = ONE
        applied = []
        if peak and overlaps(seg_start, seg_end, peak[0], peak[1]) and peak[2] != ONE:
            multiplier *= peak[2]
            applied.append('peak')
        if weekend_multiplier != ONE:
            multiplier *= weekend_multiplier
            applied.append('weekend')
        hours = _dec(duration_minutes(seg_start, seg_end)) / 60
        segments.append({
            'start': to_db_datetime(seg_start),
            'end': to_db_datetime(seg_end),
            'hours': hours,
            'multiplier': multiplier,
            'multipliers': applied,
            'amount': unit_rate * hours * multiplier,
        })
    return segments


def _promo_discount(promo: Optional[dict], base_amount: Decimal) -> tuple:
    """
    Discount a promo grants on the base amount.

    Returns:
        tuple: (discount Decimal, rejection reason or None)
    """
    if not promo:
        return ZERO, None

    min_order = promo.get('min_order_amount')
    if min_order is not None and base_amount < _dec(min_order):
        return ZERO, 'min_order_not_met'

    value = _dec(promo.get('value'))
    if promo.get('discount_type') == 'percentage':
        discount = base_amount * value / HUNDRED
        max_discount = promo.get('max_discount_amount')
        if max_discount is not None:
            discount = min(discount, _dec(max_discount))
    else:
        discount = min(value, base_amount)

    return min(discount, base_amount), None


def calculate_price(
    pricing: dict,
    booking_date,
    start,
    end,
    promo: Optional[dict] = None,
    default_tax_rate: float = 0.0,
    default_currency: str = 'INR'
) -> Dict[str, Any]:
    """
    Price a booking window under a space's pricing configuration.

    Pure function: no database access, no side effects. Calling it twice
    with the same inputs returns the same breakdown.

    Args:
        pricing: Space pricing config
        booking_date: Booking date
        start: Window start (datetime)
        end: Window end (datetime)
        promo: Validated promo terms or None
        default_tax_rate: Tax percentage when the space sets none
        default_currency: Currency when the space sets none

    Returns:
        dict with the complete breakdown:
        {
            'rate_unit', 'unit_rate', 'segments', 'applied_rules',
            'time_block', 'base_amount', 'discounts', 'discount_amount',
            'promo_code', 'promo_rejected_reason', 'tax_rate', 'taxes',
            'setup_fee', 'security_deposit', 'total_amount',
            'amount_with_deposit', 'currency'
        }

    Raises:
        ValidationError: On an empty window or broken pricing config
    """
    minutes = duration_minutes(start, end)
    if minutes <= 0:
        raise ValidationError("End time must be after start time", code='invalid_window')

    rate_unit = pricing.get('rate_unit') or 'hourly'
    if rate_unit not in RATE_UNITS:
        raise ValidationError(f"Unknown rate unit '{rate_unit}'", code='invalid_pricing')

    applied_rules = []

    # 1. Unit rate: a special-event override replaces the base rate
    special_rate = _special_event_rate(pricing, booking_date)
    if special_rate is not None:
        unit_rate = special_rate
        applied_rules.append('special_event')
    else:
        unit_rate = _dec(pricing.get('base_price'))

    # 2. Multipliers: peak first, then weekend
    peak = _peak_window(pricing, booking_date)
    weekend_multiplier = ONE
    if is_weekend(booking_date) and pricing.get('weekend_multiplier'):
        weekend_multiplier = _dec(pricing['weekend_multiplier'])

    segments = []
    time_block = None

    if rate_unit == 'monthly_pass':
        monthly_pass = pricing.get('monthly_pass') or {}
        if monthly_pass.get('price') is None:
            raise ValidationError("Space has no monthly pass configured", code='invalid_pricing')
        base_amount = _dec(monthly_pass['price'])
        applied_rules.append('monthly_pass')

    elif rate_unit == 'daily':
        days = math.ceil(minutes / (24 * 60))
        multiplier = ONE
        multipliers = []
        if peak and overlaps(start, end, peak[0], peak[1]) and peak[2] != ONE:
            multiplier *= peak[2]
            multipliers.append('peak')
        if weekend_multiplier != ONE:
            multiplier *= weekend_multiplier
            multipliers.append('weekend')
        base_amount = unit_rate * days * multiplier
        segments.append({
            'start': to_db_datetime(start),
            'end': to_db_datetime(end),
            'days': days,
            'multiplier': multiplier,
            'multipliers': multipliers,
            'amount': base_amount,
        })

    else:
        segments = _rate_segments(unit_rate, start, end, peak, weekend_multiplier)
        base_amount = sum((s['amount'] for s in segments), ZERO)

        # 3. Time-block packages are all-or-nothing, never prorated
        if rate_unit == 'time_block':
            time_block = _matching_time_block(pricing, minutes)
            if time_block:
                # Flat package price replaces the hourly segments
                base_amount = _dec(time_block.get('price'))
                applied_rules.append('time_block')
                segments = []

    for segment in segments:
        for name in segment['multipliers']:
            if name not in applied_rules:
                applied_rules.append(name)

    # 4. Fees: deposit is disclosed but not part of the charged total
    setup_fee = _dec(pricing.get('setup_fee'))
    security_deposit = _dec(pricing.get('security_deposit'))

    # 5. Promo applies to the base amount only
    discount, promo_rejected_reason = _promo_discount(promo, base_amount)
    discounts = []
    applied_code = None
    if promo and promo_rejected_reason is None:
        applied_code = promo.get('code')
        discounts.append({
            'code': applied_code,
            'type': promo.get('discount_type'),
            'value': float(_dec(promo.get('value'))),
            'amount': _money(discount),
        })

    # 6. Taxes on the discounted base
    tax_rate = pricing.get('tax_rate')
    tax_rate = _dec(default_tax_rate if tax_rate is None else tax_rate)
    taxes = (base_amount - discount) * tax_rate / HUNDRED

    # 7. Total
    total = base_amount - discount + taxes + setup_fee

    return {
        'rate_unit': rate_unit,
        'unit_rate': _money(unit_rate),
        'segments': [
            {
                **segment,
                'hours': float(segment['hours']) if 'hours' in segment else None,
                'multiplier': float(segment['multiplier']),
                'amount': _money(segment['amount']),
            }
            for segment in segments
        ],
        'applied_rules': applied_rules,
        'time_block': dict(time_block) if time_block else None,
        'base_amount': _money(base_amount),
        'discounts': discounts,
        'discount_amount': _money(discount),
        'promo_code': applied_code,
        'promo_rejected_reason': promo_rejected_reason,
        'tax_rate': float(tax_rate),
        'taxes': _money(taxes),
        'setup_fee': _money(setup_fee),
        'security_deposit': _money(security_deposit),
        'total_amount': _money(total),
        'amount_with_deposit': _money(total + security_deposit),
        'currency': pricing.get('currency') or default_currency,
    }


def quote_for_space(space: dict, booking_date, start, end, promo: Optional[dict] = None) -> Dict[str, Any]:
    """Price a window for a loaded space using the app's tax/currency defaults."""
    quote = calculate_price(
        space.get('pricing') or {},
        booking_date,
        start,
        end,
        promo=promo,
        default_tax_rate=current_app.config.get('DEFAULT_TAX_RATE', 0.0),
        default_currency=current_app.config.get('DEFAULT_CURRENCY', 'INR'),
    )
    logger.info(
        f"[Pricing] space={space['id']} window={to_db_datetime(start)}..{to_db_datetime(end)} "
        f"rules={quote['applied_rules']} base={quote['base_amount']} total={quote['total_amount']}"
    )
    return quote


def price_quote(
    space_id: int,
    booking_date,
    start_time: str,
    end_time: str,
    promo_code: Optional[str] = None,
    now=None
) -> Dict[str, Any]:
    """
    Quote a booking window for a space.

    The promo code is validated but never consumed, so quoting is
    repeatable.

    Raises:
        NotFoundError: Unknown space or promo code
        ValidationError: Malformed window or unusable promo
        ConflictError: Promo usage limit reached
    """
    day, start, end = parse_booking_window(booking_date, start_time, end_time)
    space = get_space_by_id(space_id)
    if not space:
        raise NotFoundError(f"Space {space_id} not found", code='space_not_found')

    promo = None
    if promo_code:
        promo = validate_promo_code(promo_code, now or get_now())

    return quote_for_space(space, day, start, end, promo=promo)


def get_pricing_options(space: dict) -> Dict[str, Any]:
    """
    Summarize which pricing rules a space uses.

    Args:
        space: Space dict

    Returns:
        dict of flags plus the raw rule configs
    """
    pricing = space.get('pricing') or {}
    weekend_multiplier = pricing.get('weekend_multiplier')
    return {
        'base_price': pricing.get('base_price', 0),
        'rate_unit': pricing.get('rate_unit') or 'hourly',
        'has_peak_pricing': bool(pricing.get('peak_hours')),
        'has_weekend_pricing': bool(weekend_multiplier) and weekend_multiplier != 1,
        'has_time_blocks': bool(pricing.get('time_blocks')),
        'has_monthly_pass': bool(pricing.get('monthly_pass')),
        'has_special_event_pricing': bool(pricing.get('special_events')),
        'peak_hours': pricing.get('peak_hours'),
        'time_blocks': pricing.get('time_blocks') or [],
        'monthly_pass': pricing.get('monthly_pass'),
        'setup_fee': pricing.get('setup_fee', 0),
        'security_deposit': pricing.get('security_deposit', 0),
    }
