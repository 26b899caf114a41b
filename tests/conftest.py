"""
Pytest configuration and fixtures.
Every test gets its own sqlite file, so tests never share bookings.
"""

import os
import pytest
from datetime import datetime

os.environ.setdefault('FLASK_ENV', 'test')


ALL_DAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

DEFAULT_HOURS = {day: {'open': '09:00', 'close': '18:00', 'closed': False} for day in ALL_DAYS}

DEFAULT_PRICING = {
    'base_price': 500,
    'rate_unit': 'hourly',
    'tax_rate': 0,
    'currency': 'INR',
}


@pytest.fixture
def app(tmp_path):
    """Create test application with an isolated database file."""
    from app import create_app
    from database import init_db

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['DATABASE_PATH'] = str(tmp_path / 'venue_bookings_test.db')

    with app.app_context():
        init_db(seed=False)
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def space_factory(app):
    """
    Create spaces with sensible defaults.

    Defaults: open 09:00-18:00 every day, 500/hour, no tax, no buffer,
    no notice or duration rules.
    """
    from models.space import create_space

    def _create(**overrides):
        params = {
            'owner_id': 'owner-1',
            'name': 'Test Room',
            'capacity': 8,
            'category': 'meeting',
            'operating_hours': dict(DEFAULT_HOURS),
            'blackout_dates': [],
            'pricing': dict(DEFAULT_PRICING),
            'booking_rules': {},
            'cancellation_policy': {'refund_percentage': 50},
        }
        params.update(overrides)
        return create_space(**params)

    return _create


@pytest.fixture
def promo_factory(app):
    """Create promo codes valid from 2020 to 2035 by default."""
    from models.promo_code import create_promo_code

    def _create(code='SAVE10', discount_type='percentage', value=10, **overrides):
        params = {
            'valid_from': datetime(2020, 1, 1),
            'valid_until': datetime(2035, 12, 31, 23, 59, 59),
        }
        params.update(overrides)
        return create_promo_code(code, discount_type, value, **params)

    return _create
