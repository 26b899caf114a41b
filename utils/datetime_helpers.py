"""
Timezone-aware date/time helpers and booking time-window arithmetic.

All booking windows are naive datetimes expressed in the configured venue
timezone. Intervals are half-open: [start, end).
"""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from flask import current_app


DAYS_OF_WEEK = (
    'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday'
)

DB_DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'
MINUTES_PER_DAY = 24 * 60


# =============================================================================
# CLOCK
# =============================================================================

def get_timezone() -> ZoneInfo:
    """Get the configured timezone."""
    tz_name = current_app.config.get('TIMEZONE', 'UTC')
    return ZoneInfo(tz_name)


def get_now() -> datetime:
    """Get current wall-clock datetime (naive) in the configured timezone."""
    return datetime.now(get_timezone()).replace(tzinfo=None, microsecond=0)


# =============================================================================
# PARSING / FORMATTING
# =============================================================================

def parse_date(value) -> date:
    """Parse YYYY-MM-DD (or pass through a date)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value), '%Y-%m-%d').date()


def parse_time(value: str) -> int:
    """
    Parse HH:MM into minutes since midnight.

    '24:00' is accepted as end of day.
    """
    hours, minutes = str(value).split(':')[:2]
    total = int(hours) * 60 + int(minutes)
    if not 0 <= total <= MINUTES_PER_DAY or not 0 <= int(minutes) < 60:
        raise ValueError(f"Invalid time of day: {value}")
    return total


def combine(booking_date, time_str: str) -> datetime:
    """Build a datetime from a date and an HH:MM string."""
    day = parse_date(booking_date)
    return datetime.combine(day, time.min) + timedelta(minutes=parse_time(time_str))


def to_db_datetime(value: datetime) -> str:
    """Format a datetime for storage (sortable text)."""
    return value.strftime(DB_DATETIME_FORMAT)


def from_db_datetime(value) -> datetime:
    """Parse a stored datetime; None stays None."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


# =============================================================================
# INTERVAL MATH
# =============================================================================

def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """True iff the half-open intervals intersect. Touching edges do not overlap."""
    return a_start < b_end and b_start < a_end


def duration_minutes(start: datetime, end: datetime) -> float:
    """Length of [start, end) in minutes."""
    return (end - start).total_seconds() / 60


def expand_window(start: datetime, end: datetime, minutes: int) -> tuple:
    """Pad a window by `minutes` on both sides."""
    pad = timedelta(minutes=minutes or 0)
    return start - pad, end + pad


def split_window(start: datetime, end: datetime, boundaries) -> list:
    """
    Split [start, end) at every boundary strictly inside it.

    Returns:
        list of (seg_start, seg_end) tuples covering the window in order
    """
    cuts = sorted({b for b in boundaries if start < b < end})
    points = [start] + cuts + [end]
    return list(zip(points[:-1], points[1:]))


def day_of_week(value) -> str:
    """Lower-case day name used to index the operating-hours table."""
    return DAYS_OF_WEEK[parse_date(value).weekday()]


def is_weekend(value) -> bool:
    """Saturday or Sunday."""
    return parse_date(value).weekday() >= 5


def _minute_of_day(moment: datetime, day: date) -> int:
    """Minutes since `day` midnight; next-day midnight reads as 1440."""
    delta = moment - datetime.combine(day, time.min)
    return int(delta.total_seconds() // 60)


def operating_hours_violation(space: dict, booking_date, start: datetime, end: datetime):
    """
    Explain why a window falls outside a space's opening hours.

    Returns:
        None when bookable, otherwise one of
        'blackout_date', 'closed_day', 'outside_operating_hours'
    """
    day = parse_date(booking_date)

    blackout = {str(d)[:10] for d in (space.get('blackout_dates') or [])}
    if day.isoformat() in blackout:
        return 'blackout_date'

    hours_table = space.get('operating_hours') or {}
    if not hours_table:
        # No table configured: the space has no hours restriction
        return None

    hours = hours_table.get(day_of_week(day))
    if not hours or hours.get('closed'):
        return 'closed_day'

    open_min = parse_time(hours['open'])
    close_min = parse_time(hours['close'])
    if _minute_of_day(start, day) < open_min or _minute_of_day(end, day) > close_min:
        return 'outside_operating_hours'
    return None


def within_operating_hours(space: dict, booking_date, start: datetime, end: datetime) -> bool:
    """Day not closed, not blacked out, and [start, end] inside [open, close]."""
    return operating_hours_violation(space, booking_date, start, end) is None
