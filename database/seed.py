"""
Database seed data.
Demo space and promo code for fresh development installations.
"""

import json


DEMO_OPERATING_HOURS = {
    day: {'open': '09:00', 'close': '18:00', 'closed': False}
    for day in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday')
}
DEMO_OPERATING_HOURS['sunday'] = {'open': '10:00', 'close': '16:00', 'closed': False}

DEMO_PRICING = {
    'base_price': 500,
    'rate_unit': 'hourly',
    'peak_hours': {'start': '17:00', 'end': '18:00', 'multiplier': 1.25},
    'weekend_multiplier': 1.2,
    'time_blocks': [
        {'title': 'Half day', 'duration_minutes': 240, 'price': 1800},
    ],
    'setup_fee': 200,
    'security_deposit': 500,
    'tax_rate': 18,
    'currency': 'INR',
}

DEMO_BOOKING_RULES = {
    'min_advance_hours': 1,
    'min_duration_minutes': 60,
    'max_duration_minutes': 480,
    'buffer_minutes': 15,
}


def seed_database(db):
    """Insert initial seed data."""

    # 1. Demo space
    db.execute('''
        INSERT INTO spaces (owner_id, name, capacity, category, operating_hours,
                            blackout_dates, pricing, booking_rules, cancellation_policy)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        'owner-demo',
        'Demo Meeting Room',
        12,
        'meeting',
        json.dumps(DEMO_OPERATING_HOURS),
        json.dumps([]),
        json.dumps(DEMO_PRICING),
        json.dumps(DEMO_BOOKING_RULES),
        json.dumps({'free_until_hours': 24, 'refund_percentage': 50}),
    ))

    # 2. Demo promo code
    db.execute('''
        INSERT INTO promo_codes (code, discount_type, value, max_discount_amount,
                                 valid_from, valid_until, usage_limit)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    ''', ('WELCOME10', 'percentage', 10, 500, '2024-01-01 00:00:00', '2030-12-31 23:59:59', 100))
