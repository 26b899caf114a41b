"""
Lifecycle Service - booking creation and guarded status transitions.

Status flow:
    pending -> confirmed -> checked_in -> checked_out -> completed
    pending | confirmed -> cancelled
    confirmed -> no_show (after the check-in grace window)

Every transition goes through models.booking_state.transition_status, which
re-checks the current status inside the UPDATE itself. Space statistics are
refreshed explicitly after each transition that changes them.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional

from flask import current_app

from database import immediate_transaction
from models.booking import (
    generate_booking_code,
    get_booking_by_code,
    get_booking_by_id,
    get_confirmed_bookings_starting_before,
    insert_booking,
    update_payment_status,
)
from models.booking_state import (
    CANCELLED,
    CHECKED_IN,
    CHECKED_OUT,
    COMPLETED,
    CONFIRMED,
    NO_SHOW,
    PAYMENT_STATUSES,
    PENDING,
    get_allowed_transitions,
    get_status_history,
    transition_status,
)
from models.space import get_space_by_id, update_space_statistics
from utils.datetime_helpers import duration_minutes, get_now, to_db_datetime
from utils.errors import (
    ConflictError,
    EligibilityError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from utils.validators import parse_booking_window, require_identifier, sanitize_input

from .availability_service import ensure_available, load_space, suggest_alternative_slots
from .pricing_service import quote_for_space
from .promo_service import redeem_promo_code, validate_promo_code

logger = logging.getLogger(__name__)

PAYMENT_EVENTS = tuple(s for s in PAYMENT_STATUSES if s != 'pending')
CREATION_PAYMENT_STATUSES = ('pending', 'paid')


def _require_booking(booking_id: int, cursor=None) -> dict:
    booking = get_booking_by_id(booking_id, cursor=cursor)
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found", code='booking_not_found')
    return booking


def _apply_transition(booking: dict, to_status: str, changed_by: str = None, notes: str = '',
                      fields: dict = None, cursor=None) -> None:
    """Run one guarded transition or raise InvalidTransitionError."""
    applied, previous = transition_status(
        booking['id'], to_status, changed_by=changed_by, notes=notes, fields=fields, cursor=cursor
    )
    if not applied:
        if previous is None:
            raise NotFoundError(f"Booking {booking['id']} not found", code='booking_not_found')
        raise InvalidTransitionError(previous, to_status)


def checkin_window(booking: dict) -> tuple:
    """(earliest, latest) instants at which check-in is accepted, both inclusive."""
    early = current_app.config.get('CHECKIN_EARLY_MINUTES', 15)
    grace = current_app.config.get('CHECKIN_GRACE_MINUTES', 30)
    start = booking['start_at']
    return start - timedelta(minutes=early), start + timedelta(minutes=grace)


def can_check_in(booking: dict, now: datetime) -> bool:
    """Confirmed and inside the check-in window."""
    if booking['status'] != CONFIRMED:
        return False
    earliest, latest = checkin_window(booking)
    return earliest <= now <= latest


def can_check_out(booking: dict) -> bool:
    return booking['status'] == CHECKED_IN


# =============================================================================
# CREATE
# =============================================================================

def create_booking(
    space_id: int,
    customer_id: str,
    booking_date,
    start_time: str,
    end_time: str,
    promo_code: Optional[str] = None,
    payment_status: str = 'pending',
    now: datetime = None
) -> Dict[str, Any]:
    """
    Create a booking.

    Availability check, promo redemption and insert run inside one
    BEGIN IMMEDIATE transaction, so two overlapping requests for the same
    space are serialized and the second one sees the first.

    Args:
        space_id: Space ID
        customer_id: Customer making the booking
        booking_date: Date (YYYY-MM-DD)
        start_time: Start HH:MM
        end_time: End HH:MM
        promo_code: Optional promo code
        payment_status: 'pending', or 'paid' when payment already cleared
        now: Current time (defaults to the configured clock)

    Returns:
        Booking dict ('pending', or 'confirmed' if paid)

    Raises:
        ValidationError: Malformed input or booking rule broken
        NotFoundError: Unknown space or promo code
        ConflictError: Overlapping booking (with suggestions) or promo exhausted
    """
    now = now or get_now()
    customer_id = require_identifier(customer_id, 'customer_id')
    if payment_status not in CREATION_PAYMENT_STATUSES:
        raise ValidationError(f"Invalid payment status '{payment_status}'", code='invalid_payment_status')
    day, start, end = parse_booking_window(booking_date, start_time, end_time)

    try:
        with immediate_transaction() as cursor:
            space = load_space(space_id, cursor=cursor)
            ensure_available(space, day, start, end, now, cursor=cursor)

            promo = validate_promo_code(promo_code, now, cursor=cursor) if promo_code else None
            quote = quote_for_space(space, day, start, end, promo=promo)

            # Consumed only when the discount actually applied
            if quote['promo_code']:
                redeem_promo_code(quote['promo_code'], now, cursor=cursor)

            status = CONFIRMED if payment_status == 'paid' else PENDING
            booking_code = generate_booking_code(day.isoformat(), cursor=cursor)
            booking_id = insert_booking(
                cursor,
                booking_code,
                space['id'],
                customer_id,
                day.isoformat(),
                start,
                end,
                status,
                payment_status,
                quote,
                created_by=customer_id,
            )
    except ConflictError as e:
        if e.code == 'booking_conflict':
            space = load_space(space_id)
            e.details['suggestions'] = suggest_alternative_slots(
                space, day, duration_minutes(start, end), now
            )
        raise

    update_space_statistics(space['id'])
    logger.info(
        f"[Lifecycle] Created {booking_code} space={space['id']} customer={customer_id} "
        f"status={status} total={quote['total_amount']} {quote['currency']}"
    )
    return get_booking_by_id(booking_id)


# =============================================================================
# PAYMENT
# =============================================================================

def record_payment_event(booking_id: int, event: str) -> Dict[str, Any]:
    """
    Apply a payment collaborator event to a booking.

    'paid' also confirms a pending booking. 'failed' and 'refunded' only
    record the payment status.

    Raises:
        ValidationError: Unknown event
        NotFoundError: Unknown booking
    """
    if event not in PAYMENT_EVENTS:
        raise ValidationError(f"Unknown payment event '{event}'", code='invalid_payment_event')

    with immediate_transaction() as cursor:
        booking = _require_booking(booking_id, cursor=cursor)
        update_payment_status(booking['id'], event, cursor=cursor)
        if event == 'paid' and booking['status'] == PENDING:
            _apply_transition(booking, CONFIRMED, changed_by='payment', notes='Payment cleared',
                              cursor=cursor)

    update_space_statistics(booking['space_id'])
    logger.info(f"[Lifecycle] {booking['booking_code']} payment event '{event}'")
    return get_booking_by_id(booking['id'])


# =============================================================================
# CHECK-IN / CHECK-OUT
# =============================================================================

def check_in(booking_id: int, staff_id: str, now: datetime = None) -> Dict[str, Any]:
    """
    Check a confirmed booking in.

    Accepted from 15 minutes before start until the grace window after
    start elapses, both ends inclusive.

    Raises:
        NotFoundError: Unknown booking
        InvalidTransitionError: Booking is not confirmed
        EligibilityError: Too early or past the grace window
    """
    now = now or get_now()
    staff_id = require_identifier(staff_id, 'staff_id')
    booking = _require_booking(booking_id)

    if booking['status'] != CONFIRMED:
        raise InvalidTransitionError(booking['status'], CHECKED_IN)

    earliest, latest = checkin_window(booking)
    if now < earliest:
        raise EligibilityError(
            f"Check-in opens at {to_db_datetime(earliest)}",
            code='too_early',
            opens_at=to_db_datetime(earliest),
        )
    if now > latest:
        raise EligibilityError(
            f"Check-in grace window closed at {to_db_datetime(latest)}",
            code='grace_elapsed',
            closed_at=to_db_datetime(latest),
        )

    _apply_transition(booking, CHECKED_IN, changed_by=staff_id, notes='Checked in', fields={
        'checked_in_at': to_db_datetime(now),
        'checked_in_by': staff_id,
    })

    logger.info(f"[Lifecycle] {booking['booking_code']} checked in by {staff_id}")
    return get_booking_by_id(booking['id'])


def check_out(booking_id: int, staff_id: str, now: datetime = None) -> Dict[str, Any]:
    """
    Check a booking out; it moves straight on to completed.

    Raises:
        NotFoundError: Unknown booking
        InvalidTransitionError: Booking is not checked in
    """
    now = now or get_now()
    staff_id = require_identifier(staff_id, 'staff_id')
    booking = _require_booking(booking_id)

    if booking['status'] != CHECKED_IN:
        raise InvalidTransitionError(booking['status'], CHECKED_OUT)

    with immediate_transaction() as cursor:
        _apply_transition(booking, CHECKED_OUT, changed_by=staff_id, notes='Checked out', fields={
            'checked_out_at': to_db_datetime(now),
            'checked_out_by': staff_id,
        }, cursor=cursor)
        _apply_transition(booking, COMPLETED, changed_by=staff_id, notes='Checkout recorded',
                          cursor=cursor)

    update_space_statistics(booking['space_id'])
    logger.info(f"[Lifecycle] {booking['booking_code']} checked out by {staff_id}")
    return get_booking_by_id(booking['id'])


# =============================================================================
# CANCEL / NO-SHOW
# =============================================================================

def cancel_booking(
    booking_id: int,
    reason: str,
    cancelled_by: str = None,
    now: datetime = None,
    payments=None
) -> Dict[str, Any]:
    """
    Cancel a pending or confirmed booking.

    A redeemed promo code stays consumed. The payment collaborator receives
    a refund request with the space's cancellation policy.

    Args:
        booking_id: Booking ID
        reason: Cancellation reason
        cancelled_by: Actor cancelling (defaults to the customer)
        now: Current time
        payments: Payment collaborator (defaults to the app's)

    Returns:
        dict: {'booking': ..., 'refund': collaborator response}

    Raises:
        NotFoundError: Unknown booking
        InvalidTransitionError: Booking already past confirmed
    """
    now = now or get_now()
    booking = _require_booking(booking_id)
    actor = cancelled_by or booking['customer_id']

    _apply_transition(booking, CANCELLED, changed_by=actor, notes=reason or '', fields={
        'cancellation_reason': sanitize_input(reason or '', max_length=500),
        'cancelled_at': to_db_datetime(now),
        'cancelled_by': actor,
    })
    update_space_statistics(booking['space_id'])

    cancelled = get_booking_by_id(booking['id'])
    space = get_space_by_id(booking['space_id'])

    payments = payments or current_app.extensions['payment_collaborator']
    refund = payments.request_refund(cancelled, space.get('cancellation_policy') if space else None)

    logger.info(f"[Lifecycle] {booking['booking_code']} cancelled by {actor}")
    return {'booking': cancelled, 'refund': refund}


def mark_no_show(booking_id: int, now: datetime = None) -> Dict[str, Any]:
    """
    Mark a confirmed booking as no-show once its grace window has elapsed.

    Raises:
        NotFoundError: Unknown booking
        InvalidTransitionError: Booking is not confirmed
        EligibilityError: Grace window still open
    """
    now = now or get_now()
    booking = _require_booking(booking_id)

    if booking['status'] != CONFIRMED:
        raise InvalidTransitionError(booking['status'], NO_SHOW)

    _, latest = checkin_window(booking)
    if now <= latest:
        raise EligibilityError(
            f"Check-in is open until {to_db_datetime(latest)}",
            code='grace_not_elapsed',
            closes_at=to_db_datetime(latest),
        )

    _apply_transition(booking, NO_SHOW, changed_by='system', notes='Grace window elapsed')
    update_space_statistics(booking['space_id'])

    logger.info(f"[Lifecycle] {booking['booking_code']} marked no-show")
    return get_booking_by_id(booking['id'])


def sweep_no_shows(now: datetime = None) -> List[str]:
    """
    Mark every confirmed booking past its grace window as no-show.

    Bookings that changed state since the scan are skipped.

    Returns:
        list of booking codes marked no-show
    """
    now = now or get_now()
    grace = current_app.config.get('CHECKIN_GRACE_MINUTES', 30)
    cutoff = now - timedelta(minutes=grace)

    marked = []
    for booking in get_confirmed_bookings_starting_before(cutoff):
        try:
            mark_no_show(booking['id'], now=now)
        except (InvalidTransitionError, EligibilityError) as e:
            logger.info(f"[Lifecycle] No-show sweep skipped {booking['booking_code']}: {e.message}")
            continue
        marked.append(booking['booking_code'])

    logger.info(f"[Lifecycle] No-show sweep marked {len(marked)} booking(s)")
    return marked


# =============================================================================
# READ
# =============================================================================

def get_booking(booking_id: int, include_history: bool = False) -> Dict[str, Any]:
    """
    Get a booking, optionally with its status history.

    Raises:
        NotFoundError: Unknown booking
    """
    booking = _require_booking(booking_id)
    booking['allowed_transitions'] = sorted(get_allowed_transitions(booking['status']))
    if include_history:
        booking['history'] = get_status_history(booking['id'])
    return booking


def find_booking_by_code(booking_code: str) -> Dict[str, Any]:
    """
    Get a booking by its booking code, for staff lookups without a token.

    Raises:
        NotFoundError: Unknown code
    """
    booking = get_booking_by_code(booking_code)
    if not booking:
        raise NotFoundError(f"Booking {booking_code} not found", code='booking_not_found')
    booking['allowed_transitions'] = sorted(get_allowed_transitions(booking['status']))
    return booking
