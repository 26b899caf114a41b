"""
Standardized API response helpers.

Provides consistent JSON response format across all API endpoints:

    Success:  {"success": true, "data": {...}, "message": "..."}
    Error:    {"success": false, "error": "...", "code": "..."}

Usage:
    from utils.api_response import api_success, api_error

    return api_success(data=booking, message='Booking created', status=201)
    return api_error('Booking not found', status=404, code='booking_not_found')
"""

from datetime import date, datetime
from typing import Any

from flask import jsonify

from utils.datetime_helpers import to_db_datetime


def to_json_safe(value: Any) -> Any:
    """
    Recursively convert dates and datetimes to strings.

    Datetimes use the storage format ('YYYY-MM-DD HH:MM:SS'), dates ISO.
    """
    if isinstance(value, datetime):
        return to_db_datetime(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(item) for item in value]
    return value


def api_success(
    data: Any = None,
    message: str | None = None,
    status: int = 200,
    **extra_fields: Any
) -> tuple:
    """
    Build a standardized success JSON response.

    Args:
        data: Optional payload to include as 'data' key.
        message: Optional success message.
        status: HTTP status code (default 200).
        **extra_fields: Additional top-level fields to include in the response.

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': True}

    if data is not None:
        response['data'] = to_json_safe(data)

    if message:
        response['message'] = message

    if extra_fields:
        response.update(to_json_safe(extra_fields))

    return jsonify(response), status


def api_error(error: str, status: int = 400, **extra_fields: Any) -> tuple:
    """
    Build a standardized error JSON response.

    Args:
        error: Error message.
        status: HTTP status code (default 400).
        **extra_fields: Additional top-level fields (e.g., code, suggestions).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': False, 'error': error}

    # Merge extra fields for additional error context
    if extra_fields:
        response.update(to_json_safe(extra_fields))

    return jsonify(response), status
