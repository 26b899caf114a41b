"""
Input validation helper functions.
Validates dates, times, booking windows and free-text fields before they
reach the booking engine.
"""

import re
from datetime import date, datetime

from utils.datetime_helpers import combine, parse_date, parse_time
from utils.errors import ValidationError


TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-4]):[0-5][0-9]$')


def validate_date_format(date_str: str) -> bool:
    """
    Validate date is in YYYY-MM-DD format.

    Args:
        date_str: Date string to validate

    Returns:
        True if valid format
    """
    try:
        datetime.strptime(date_str, '%Y-%m-%d')
        return True
    except (ValueError, TypeError):
        return False


def validate_time_format(time_str: str) -> bool:
    """
    Validate time is in HH:MM format (24h, '24:00' allowed as end of day).

    Args:
        time_str: Time string to validate

    Returns:
        True if valid format
    """
    if not time_str or not TIME_PATTERN.match(str(time_str)):
        return False
    try:
        parse_time(time_str)
        return True
    except ValueError:
        return False


def parse_booking_window(booking_date, start_time: str, end_time: str) -> tuple:
    """
    Turn a date plus HH:MM start/end into a same-day booking window.

    Args:
        booking_date: Date (YYYY-MM-DD string or date)
        start_time: Start time HH:MM
        end_time: End time HH:MM

    Returns:
        tuple: (date, start datetime, end datetime)

    Raises:
        ValidationError: On malformed values or start >= end
    """
    if booking_date is None:
        raise ValidationError("Date is required", code='invalid_date')
    if not isinstance(booking_date, date) and not (
            isinstance(booking_date, str) and validate_date_format(booking_date)):
        raise ValidationError(f"Invalid date '{booking_date}', expected YYYY-MM-DD", code='invalid_date')

    for label, value in (('start', start_time), ('end', end_time)):
        if not validate_time_format(value):
            raise ValidationError(f"Invalid {label} time '{value}', expected HH:MM", code='invalid_time')

    day = parse_date(booking_date)
    start = combine(day, start_time)
    end = combine(day, end_time)
    if start >= end:
        raise ValidationError("End time must be after start time", code='invalid_window')
    return day, start, end


def require_identifier(value, label: str) -> str:
    """
    Require a non-empty actor/entity identifier.

    Raises:
        ValidationError: When missing or blank
    """
    cleaned = sanitize_input(str(value) if value is not None else '', max_length=64)
    if not cleaned:
        raise ValidationError(f"{label} is required", code='missing_field', field=label)
    return cleaned


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    # Strip whitespace
    sanitized = text.strip()

    # Limit length if specified
    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
