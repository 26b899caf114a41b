"""
Space data access functions.
Spaces are created by owners outside the engine; the engine reads their
hours, pricing and booking rules and keeps their booking statistics current.
"""

import json

from database import get_db


JSON_FIELDS = ('operating_hours', 'blackout_dates', 'pricing', 'booking_rules', 'cancellation_policy')

JSON_DEFAULTS = {
    'operating_hours': {},
    'blackout_dates': [],
    'pricing': {},
    'booking_rules': {},
    'cancellation_policy': None,
}


def _row_to_space(row) -> dict:
    """Convert a spaces row to a dict with decoded JSON fields."""
    space = dict(row)
    for field in JSON_FIELDS:
        raw = space.get(field)
        space[field] = json.loads(raw) if raw else JSON_DEFAULTS[field]
    space['is_active'] = bool(space.get('is_active'))
    return space


def get_space_by_id(space_id: int, cursor=None) -> dict:
    """
    Get space by ID.

    Args:
        space_id: Space ID
        cursor: Optional cursor of an open transaction

    Returns:
        Space dict or None if not found
    """
    cur = cursor or get_db().cursor()
    cur.execute('SELECT * FROM spaces WHERE id = ?', (space_id,))
    row = cur.fetchone()
    return _row_to_space(row) if row else None


def create_space(
    owner_id: str,
    name: str,
    capacity: int = 1,
    category: str = 'coworking',
    operating_hours: dict = None,
    blackout_dates: list = None,
    pricing: dict = None,
    booking_rules: dict = None,
    cancellation_policy: dict = None,
    is_active: bool = True
) -> int:
    """
    Create a space.

    Returns:
        int: New space ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO spaces (owner_id, name, capacity, category, operating_hours,
                            blackout_dates, pricing, booking_rules, cancellation_policy, is_active)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        owner_id,
        name,
        capacity,
        category,
        json.dumps(operating_hours or {}),
        json.dumps(blackout_dates or []),
        json.dumps(pricing or {}),
        json.dumps(booking_rules or {}),
        json.dumps(cancellation_policy) if cancellation_policy is not None else None,
        1 if is_active else 0,
    ))
    db.commit()
    return cursor.lastrowid


def update_space_statistics(space_id: int) -> dict:
    """
    Recalculate booking statistics for a space.

    Called explicitly after lifecycle transitions:
    - total_bookings: bookings not cancelled / no-show
    - total_revenue: sum of totals for paid bookings not cancelled

    Args:
        space_id: Space ID

    Returns:
        dict with the new statistics
    """
    db = get_db()
    cursor = db.cursor()

    cursor.execute('''
        SELECT COUNT(*) AS total
        FROM bookings
        WHERE space_id = ?
          AND status NOT IN ('cancelled', 'no_show')
    ''', (space_id,))
    total_bookings = cursor.fetchone()['total']

    cursor.execute('''
        SELECT COALESCE(SUM(total_amount), 0) AS revenue
        FROM bookings
        WHERE space_id = ?
          AND payment_status = 'paid'
          AND status != 'cancelled'
    ''', (space_id,))
    total_revenue = round(cursor.fetchone()['revenue'], 2)

    cursor.execute('''
        UPDATE spaces
        SET total_bookings = ?,
            total_revenue = ?,
            updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', (total_bookings, total_revenue, space_id))
    db.commit()

    return {'total_bookings': total_bookings, 'total_revenue': total_revenue}
