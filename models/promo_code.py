"""
Promo code data access functions.
Includes the compare-and-increment used to redeem a code.
"""

from datetime import datetime

from database import get_db
from utils.datetime_helpers import to_db_datetime


def normalize_code(code: str) -> str:
    """Codes are stored and matched upper-case, trimmed."""
    return (code or '').strip().upper()


def _row_to_promo(row) -> dict:
    promo = dict(row)
    promo['is_active'] = bool(promo.get('is_active'))
    return promo


def get_promo_code_by_code(code: str, cursor=None) -> dict:
    """
    Get promo code by its (case-insensitive) code.

    Returns:
        Promo dict or None if not found
    """
    cur = cursor or get_db().cursor()
    cur.execute('SELECT * FROM promo_codes WHERE code = ?', (normalize_code(code),))
    row = cur.fetchone()
    return _row_to_promo(row) if row else None


def create_promo_code(
    code: str,
    discount_type: str,
    value: float,
    valid_from: datetime,
    valid_until: datetime,
    usage_limit: int = None,
    min_order_amount: float = None,
    max_discount_amount: float = None,
    is_active: bool = True
) -> int:
    """
    Create a promo code.

    Returns:
        int: New promo code ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO promo_codes (code, discount_type, value, min_order_amount, max_discount_amount,
                                 valid_from, valid_until, usage_limit, is_active)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        normalize_code(code),
        discount_type,
        value,
        min_order_amount,
        max_discount_amount,
        to_db_datetime(valid_from),
        to_db_datetime(valid_until),
        usage_limit,
        1 if is_active else 0,
    ))
    db.commit()
    return cursor.lastrowid


def increment_usage_if_available(code: str, now: datetime, cursor=None) -> bool:
    """
    Atomically consume one use of a promo code.

    A single conditional UPDATE re-checks active flag, validity window and
    usage limit while incrementing, so concurrent redemptions can never push
    used_count past usage_limit.

    Args:
        code: Promo code
        now: Redemption time
        cursor: Cursor of an open transaction; when omitted the change is
            committed immediately

    Returns:
        bool: True if a use was consumed
    """
    db = get_db()
    cur = cursor or db.cursor()
    stamp = to_db_datetime(now)
    cur.execute('''
        UPDATE promo_codes
        SET used_count = used_count + 1,
            updated_at = CURRENT_TIMESTAMP
        WHERE code = ?
          AND is_active = 1
          AND valid_from <= ?
          AND valid_until >= ?
          AND (usage_limit IS NULL OR used_count < usage_limit)
    ''', (normalize_code(code), stamp, stamp))
    consumed = cur.rowcount == 1
    if cursor is None:
        db.commit()
    return consumed
