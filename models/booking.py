"""
Booking CRUD operations.
Handles code generation, insert and read queries for bookings.
"""

import json
import secrets
import string
from datetime import datetime

from database import get_db
from utils.datetime_helpers import to_db_datetime, from_db_datetime
from .booking_state import BLOCKING_STATUSES, CONFIRMED, record_history


DATETIME_FIELDS = ('start_at', 'end_at', 'checked_in_at', 'checked_out_at', 'cancelled_at')

CODE_ALPHABET = string.ascii_uppercase + string.digits


def _row_to_booking(row) -> dict:
    """Convert a bookings row to a dict with parsed datetimes and pricing."""
    booking = dict(row)
    for field in DATETIME_FIELDS:
        booking[field] = from_db_datetime(booking.get(field))
    booking['pricing'] = json.loads(booking['pricing']) if booking.get('pricing') else {}
    return booking


# =============================================================================
# BOOKING CODE GENERATION
# =============================================================================

def generate_booking_code(booking_date: str = None, cursor=None, max_retries: int = 5) -> str:
    """
    Generate a unique human-readable booking code.

    Format: BK + YYMMDD + 6 random characters, e.g. BK251019A7K2QZ

    Args:
        booking_date: Booking date (YYYY-MM-DD), default today
        cursor: Active transaction cursor
        max_retries: Max attempts on collision

    Returns:
        str: Unique booking code

    Raises:
        RuntimeError: If unable to generate a unique code
    """
    if not booking_date:
        booking_date = datetime.now().strftime('%Y-%m-%d')
    date_prefix = datetime.strptime(str(booking_date)[:10], '%Y-%m-%d').strftime('%y%m%d')

    cur = cursor or get_db().cursor()

    for _ in range(max_retries):
        suffix = ''.join(secrets.choice(CODE_ALPHABET) for _ in range(6))
        code = f"BK{date_prefix}{suffix}"
        cur.execute('SELECT id FROM bookings WHERE booking_code = ?', (code,))
        if not cur.fetchone():
            return code

    raise RuntimeError("Could not generate a unique booking code")


# =============================================================================
# CREATE
# =============================================================================

def insert_booking(
    cursor,
    booking_code: str,
    space_id: int,
    customer_id: str,
    booking_date: str,
    start_at: datetime,
    end_at: datetime,
    status: str,
    payment_status: str,
    pricing: dict,
    created_by: str = None
) -> int:
    """
    Insert a booking inside the caller's transaction and record its first status.

    Returns:
        int: New booking ID
    """
    cursor.execute('''
        INSERT INTO bookings (
            booking_code, space_id, customer_id, booking_date, start_at, end_at,
            status, payment_status, pricing, total_amount, currency, promo_code
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        booking_code,
        space_id,
        customer_id,
        str(booking_date),
        to_db_datetime(start_at),
        to_db_datetime(end_at),
        status,
        payment_status,
        json.dumps(pricing),
        pricing.get('total_amount', 0),
        pricing.get('currency', 'INR'),
        pricing.get('promo_code'),
    ))
    booking_id = cursor.lastrowid

    record_history(cursor, booking_id, None, 'pending', created_by or customer_id, 'Booking created')
    if status == CONFIRMED:
        record_history(cursor, booking_id, 'pending', CONFIRMED, created_by or customer_id,
                       'Payment already cleared at creation')
    return booking_id


# =============================================================================
# READ
# =============================================================================

def get_booking_by_id(booking_id: int, cursor=None) -> dict:
    """
    Get booking by ID.

    Returns:
        Booking dict or None if not found
    """
    cur = cursor or get_db().cursor()
    cur.execute('SELECT * FROM bookings WHERE id = ?', (booking_id,))
    row = cur.fetchone()
    return _row_to_booking(row) if row else None


def get_booking_by_code(booking_code: str, cursor=None) -> dict:
    """
    Get booking by its booking code.

    Returns:
        Booking dict or None if not found
    """
    cur = cursor or get_db().cursor()
    cur.execute('SELECT * FROM bookings WHERE booking_code = ?', (booking_code,))
    row = cur.fetchone()
    return _row_to_booking(row) if row else None


def get_blocking_bookings(
    space_id: int,
    window_start: datetime,
    window_end: datetime,
    cursor=None
) -> list:
    """
    Bookings that still hold the space and touch a time range.

    Args:
        space_id: Space ID
        window_start: Range start (already padded by the caller if needed)
        window_end: Range end
        cursor: Optional cursor of an open transaction

    Returns:
        list of booking dicts ordered by start
    """
    cur = cursor or get_db().cursor()
    placeholders = ','.join('?' * len(BLOCKING_STATUSES))
    cur.execute(f'''
        SELECT * FROM bookings
        WHERE space_id = ?
          AND status IN ({placeholders})
          AND start_at <= ?
          AND end_at >= ?
        ORDER BY start_at
    ''', [space_id, *BLOCKING_STATUSES, to_db_datetime(window_end), to_db_datetime(window_start)])
    return [_row_to_booking(row) for row in cur.fetchall()]


def get_bookings_for_space_date(space_id: int, booking_date: str, statuses: tuple = BLOCKING_STATUSES) -> list:
    """
    Bookings of a space on a date, filtered by status.

    Returns:
        list of booking dicts ordered by start
    """
    db = get_db()
    cursor = db.cursor()
    placeholders = ','.join('?' * len(statuses))
    cursor.execute(f'''
        SELECT * FROM bookings
        WHERE space_id = ?
          AND booking_date = ?
          AND status IN ({placeholders})
        ORDER BY start_at
    ''', (space_id, str(booking_date), *statuses))
    return [_row_to_booking(row) for row in cursor.fetchall()]


def get_confirmed_bookings_starting_before(cutoff: datetime) -> list:
    """
    Confirmed bookings whose start is before `cutoff`.

    Used by the no-show sweep with cutoff = now - grace.
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM bookings
        WHERE status = ?
          AND start_at < ?
        ORDER BY start_at
    ''', (CONFIRMED, to_db_datetime(cutoff)))
    return [_row_to_booking(row) for row in cursor.fetchall()]


def update_payment_status(booking_id: int, payment_status: str, cursor=None) -> bool:
    """Record the payment collaborator's latest status for a booking."""
    db = get_db()
    cur = cursor or db.cursor()
    cur.execute('''
        UPDATE bookings
        SET payment_status = ?,
            updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', (payment_status, booking_id))
    if cursor is None:
        db.commit()
    return cur.rowcount == 1
