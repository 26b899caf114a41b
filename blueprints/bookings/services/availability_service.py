"""
Availability Service - decides whether a space can take a booking window.

Checks, in order:
1. Operating hours and blackout dates
2. Minimum advance notice
3. Minimum / maximum duration
4. Buffered overlap with bookings that still hold the space
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional

from flask import current_app

from models.booking import get_blocking_bookings
from models.space import get_space_by_id
from utils.datetime_helpers import (
    combine,
    day_of_week,
    duration_minutes,
    expand_window,
    get_now,
    operating_hours_violation,
    overlaps,
    to_db_datetime,
)
from utils.errors import BookingEngineError, ConflictError, NotFoundError, ValidationError
from utils.validators import parse_booking_window

logger = logging.getLogger(__name__)

HOURS_MESSAGES = {
    'blackout_date': 'Space is not available on this date',
    'closed_day': 'Space is closed on this day',
    'outside_operating_hours': 'Requested time is outside operating hours',
}


def load_space(space_id: int, cursor=None) -> dict:
    """
    Load an active space.

    Raises:
        NotFoundError: Unknown or inactive space
    """
    space = get_space_by_id(space_id, cursor=cursor)
    if not space or not space['is_active']:
        raise NotFoundError(f"Space {space_id} not found", code='space_not_found')
    return space


def find_conflict(space: dict, start: datetime, end: datetime, cursor=None) -> Optional[dict]:
    """
    First booking whose buffered window overlaps [start, end).

    Each held booking is expanded by the space's buffer minutes on both
    sides before the overlap test.
    """
    buffer_minutes = (space.get('booking_rules') or {}).get('buffer_minutes') or 0
    search_start, search_end = expand_window(start, end, buffer_minutes)

    for booking in get_blocking_bookings(space['id'], search_start, search_end, cursor=cursor):
        held_start, held_end = expand_window(booking['start_at'], booking['end_at'], buffer_minutes)
        if overlaps(held_start, held_end, start, end):
            return booking
    return None


def ensure_available(space: dict, booking_date, start: datetime, end: datetime, now: datetime,
                     cursor=None) -> None:
    """
    Raise unless the window is bookable.

    Raises:
        ValidationError: Hours, blackout, notice or duration rule broken
        ConflictError: Overlaps a held booking (names its booking code)
    """
    rules = space.get('booking_rules') or {}

    # 1. Operating hours / blackout
    violation = operating_hours_violation(space, booking_date, start, end)
    if violation:
        raise ValidationError(HOURS_MESSAGES[violation], code=violation, day=day_of_week(booking_date))

    # 2. Advance notice
    min_advance_hours = rules.get('min_advance_hours') or 0
    if start - now < timedelta(hours=min_advance_hours):
        raise ValidationError(
            f"Bookings need at least {min_advance_hours} hours notice",
            code='insufficient_notice',
            min_advance_hours=min_advance_hours,
        )

    # 3. Duration bounds
    minutes = duration_minutes(start, end)
    min_duration = rules.get('min_duration_minutes')
    max_duration = rules.get('max_duration_minutes')
    if (min_duration and minutes < min_duration) or (max_duration and minutes > max_duration):
        raise ValidationError(
            f"Duration of {minutes:g} minutes is outside the allowed range",
            code='duration_out_of_range',
            min_duration_minutes=min_duration,
            max_duration_minutes=max_duration,
        )

    # 4. Buffered overlap with held bookings
    conflict = find_conflict(space, start, end, cursor=cursor)
    if conflict:
        logger.info(
            f"[Availability] space={space['id']} {to_db_datetime(start)}..{to_db_datetime(end)} "
            f"conflicts with {conflict['booking_code']}"
        )
        raise ConflictError(
            f"Requested time overlaps booking {conflict['booking_code']}",
            code='booking_conflict',
            conflicting_booking_code=conflict['booking_code'],
        )


def suggest_alternative_slots(space: dict, booking_date, duration: float, now: datetime,
                              limit: int = None, step_minutes: int = None) -> List[Dict[str, str]]:
    """
    Free windows of the same duration on the same day.

    Scans opening hours in fixed steps and keeps windows that pass every
    availability rule.

    Returns:
        list of {'start_time': 'HH:MM', 'end_time': 'HH:MM'}
    """
    limit = limit or current_app.config.get('ALTERNATIVE_SLOT_LIMIT', 3)
    step_minutes = step_minutes or current_app.config.get('ALTERNATIVE_SLOT_STEP_MINUTES', 30)

    hours_table = space.get('operating_hours') or {}
    hours = hours_table.get(day_of_week(booking_date))
    if hours_table and (not hours or hours.get('closed')):
        return []
    day_start = combine(booking_date, hours['open'] if hours else '00:00')
    day_end = combine(booking_date, hours['close'] if hours else '24:00')

    suggestions = []
    length = timedelta(minutes=duration)
    cursor_start = day_start
    while cursor_start + length <= day_end and len(suggestions) < limit:
        candidate_end = cursor_start + length
        try:
            ensure_available(space, booking_date, cursor_start, candidate_end, now)
        except BookingEngineError:
            pass
        else:
            suggestions.append({
                'start_time': cursor_start.strftime('%H:%M'),
                'end_time': candidate_end.strftime('%H:%M'),
            })
        cursor_start += timedelta(minutes=step_minutes)
    return suggestions


def check_availability(space_id: int, booking_date, start_time: str, end_time: str,
                       now: datetime = None) -> Dict[str, Any]:
    """
    Decide whether a window is bookable.

    Args:
        space_id: Space ID
        booking_date: Date (YYYY-MM-DD)
        start_time: Start HH:MM
        end_time: End HH:MM
        now: Current time (defaults to the configured clock)

    Returns:
        {'available': True, ...} or
        {'available': False, 'reason', 'message', 'conflicting_booking_code', 'suggestions'}

    Raises:
        NotFoundError: Unknown space
        ValidationError: Malformed date/time input
    """
    now = now or get_now()
    day, start, end = parse_booking_window(booking_date, start_time, end_time)
    space = load_space(space_id)

    try:
        ensure_available(space, day, start, end, now)
    except (ValidationError, ConflictError) as e:
        return {
            'available': False,
            'space_id': space['id'],
            'date': day.isoformat(),
            'start_time': start_time,
            'end_time': end_time,
            'reason': e.code,
            'message': e.message,
            'conflicting_booking_code': e.details.get('conflicting_booking_code'),
            'suggestions': suggest_alternative_slots(space, day, duration_minutes(start, end), now),
        }

    return {
        'available': True,
        'space_id': space['id'],
        'date': day.isoformat(),
        'start_time': start_time,
        'end_time': end_time,
    }
