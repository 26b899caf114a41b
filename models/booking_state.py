"""
Booking status management functions.
Handles guarded status transitions and status history.
"""

from database import get_db


# =============================================================================
# CONSTANTS
# =============================================================================

PENDING = 'pending'
CONFIRMED = 'confirmed'
CHECKED_IN = 'checked_in'
CHECKED_OUT = 'checked_out'
COMPLETED = 'completed'
CANCELLED = 'cancelled'
NO_SHOW = 'no_show'

# Statuses that hold the space (participate in conflict detection)
BLOCKING_STATUSES = (PENDING, CONFIRMED, CHECKED_IN)

TERMINAL_STATUSES = (COMPLETED, CANCELLED, NO_SHOW)

VALID_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {CHECKED_IN, CANCELLED, NO_SHOW},
    CHECKED_IN: {CHECKED_OUT},
    CHECKED_OUT: {COMPLETED},
    COMPLETED: set(),
    CANCELLED: set(),
    NO_SHOW: set(),
}

PAYMENT_STATUSES = ('pending', 'paid', 'failed', 'refunded')


def get_allowed_transitions(status: str) -> set:
    """Statuses reachable from `status` in one step."""
    return set(VALID_TRANSITIONS.get(status, set()))


def sources_for(target: str) -> tuple:
    """Statuses from which `target` may be entered."""
    return tuple(sorted(s for s, targets in VALID_TRANSITIONS.items() if target in targets))


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def transition_status(
    booking_id: int,
    to_status: str,
    changed_by: str = None,
    notes: str = '',
    fields: dict = None,
    cursor=None
) -> tuple:
    """
    Move a booking to `to_status` with a single guarded UPDATE.

    The UPDATE only matches while the stored status is still a valid source
    for `to_status`, so two concurrent transitions cannot both win.

    Args:
        booking_id: Booking ID
        to_status: Target status
        changed_by: Actor id recorded in history
        notes: History notes
        fields: Extra columns to set in the same UPDATE
        cursor: Cursor of an open transaction; when omitted the change is
            committed immediately

    Returns:
        tuple: (applied: bool, previous_status or None if booking missing)
    """
    db = get_db()
    cur = cursor or db.cursor()

    try:
        cur.execute('SELECT status FROM bookings WHERE id = ?', (booking_id,))
        row = cur.fetchone()
        if not row:
            return False, None
        previous = row['status']

        sources = sources_for(to_status)
        if previous not in sources:
            return False, previous

        fields = fields or {}
        assignments = ''.join(f', {column} = ?' for column in fields)
        placeholders = ','.join('?' * len(sources))
        cur.execute(f'''
            UPDATE bookings
            SET status = ?{assignments},
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
              AND status = ?
              AND status IN ({placeholders})
        ''', (to_status, *fields.values(), booking_id, previous, *sources))

        if cur.rowcount != 1:
            # Lost a race against another transition
            cur.execute('SELECT status FROM bookings WHERE id = ?', (booking_id,))
            current = cur.fetchone()
            if cursor is None:
                db.rollback()
            return False, current['status'] if current else None

        record_history(cur, booking_id, previous, to_status, changed_by, notes)

        if cursor is None:
            db.commit()
        return True, previous

    except Exception:
        if cursor is None:
            db.rollback()
        raise


def record_history(cursor, booking_id: int, from_status, to_status: str, changed_by=None, notes: str = ''):
    """Append a status history row."""
    cursor.execute('''
        INSERT INTO booking_status_history
        (booking_id, from_status, to_status, changed_by, notes, created_at)
        VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
    ''', (booking_id, from_status, to_status, changed_by, notes))


def get_status_history(booking_id: int) -> list:
    """
    Get status change history for a booking.

    Returns:
        list: History entries in the order they happened
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM booking_status_history
        WHERE booking_id = ?
        ORDER BY id ASC
    ''', (booking_id,))
    return [dict(r) for r in cursor.fetchall()]
