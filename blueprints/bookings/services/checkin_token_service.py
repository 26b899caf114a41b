"""
Check-In Token Service - signed, expiring tokens for on-site check-in/out.

Token format: urlsafe base64 (unpadded) of
    json({booking_code, space_id, customer_id, issued_at, expires_at, signature})

The signature is HMAC-SHA256 over the canonical JSON of every other field.
Tokens are never stored; validity depends only on the signature, the expiry
and the booking's live status.
"""

import base64
import hashlib
import hmac
import json
import logging
from datetime import datetime, timedelta
from typing import Dict, Any

from flask import current_app

from models.booking import get_booking_by_code, get_booking_by_id
from models.booking_state import CANCELLED, TERMINAL_STATUSES
from utils.datetime_helpers import from_db_datetime, get_now, to_db_datetime
from utils.errors import (
    EligibilityError,
    ExpiredTokenError,
    NotFoundError,
    SignatureError,
)

from .lifecycle_service import can_check_in, can_check_out, check_in, check_out

logger = logging.getLogger(__name__)

PAYLOAD_FIELDS = ('booking_code', 'space_id', 'customer_id', 'issued_at', 'expires_at')


def _secret() -> bytes:
    secret = current_app.config.get('CHECKIN_TOKEN_SECRET')
    if not secret:
        raise RuntimeError("CHECKIN_TOKEN_SECRET is not configured")
    return str(secret).encode('utf-8')


def _canonical(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(',', ':'), default=str).encode('utf-8')


def _sign(payload: Dict[str, Any]) -> str:
    return hmac.new(_secret(), _canonical(payload), hashlib.sha256).hexdigest()


def _b64encode(data: Dict[str, Any]) -> str:
    return base64.urlsafe_b64encode(_canonical(data)).decode('utf-8').rstrip('=')


def _b64decode(token: str) -> Dict[str, Any]:
    padding = '=' * (-len(token) % 4)
    raw = base64.urlsafe_b64decode((token + padding).encode('utf-8'))
    decoded = json.loads(raw)
    if not isinstance(decoded, dict):
        raise ValueError("Token payload is not an object")
    return decoded


def issue_token(booking_id: int, now: datetime = None) -> Dict[str, Any]:
    """
    Issue a check-in token for a booking.

    Args:
        booking_id: Booking ID
        now: Issue time (defaults to the configured clock)

    Returns:
        dict: {'token', 'booking_code', 'issued_at', 'expires_at'}

    Raises:
        NotFoundError: Unknown booking
        EligibilityError: Booking is cancelled, completed or no-show
    """
    now = now or get_now()
    booking = get_booking_by_id(booking_id)
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found", code='booking_not_found')
    if booking['status'] in TERMINAL_STATUSES:
        raise EligibilityError(
            f"No check-in token for a {booking['status']} booking",
            code='token_not_issuable',
            booking_status=booking['status'],
        )

    ttl_hours = current_app.config.get('CHECKIN_TOKEN_TTL_HOURS', 24)
    payload = {
        'booking_code': booking['booking_code'],
        'space_id': booking['space_id'],
        'customer_id': booking['customer_id'],
        'issued_at': to_db_datetime(now),
        'expires_at': to_db_datetime(now + timedelta(hours=ttl_hours)),
    }
    token = _b64encode({**payload, 'signature': _sign(payload)})

    logger.info(f"[CheckIn] Token issued for {booking['booking_code']} until {payload['expires_at']}")
    return {
        'token': token,
        'booking_code': payload['booking_code'],
        'issued_at': payload['issued_at'],
        'expires_at': payload['expires_at'],
    }


def validate_token(encoded: str, now: datetime = None) -> Dict[str, Any]:
    """
    Verify a token and report which action it currently allows.

    Order: decode, constant-time signature check, expiry, live booking.

    Returns:
        dict: booking_id, booking_code, space_id, customer_id, status,
        expires_at, can_check_in, can_check_out and the suggested action
        ('check_in', 'check_out' or None)

    Raises:
        SignatureError: Malformed token or signature mismatch
        ExpiredTokenError: now is past expires_at
        NotFoundError: Booking no longer exists
        EligibilityError: Booking is cancelled
    """
    now = now or get_now()
    if not encoded or not isinstance(encoded, str):
        raise SignatureError("Token is missing")

    try:
        data = _b64decode(encoded.strip())
    except (ValueError, TypeError) as e:
        raise SignatureError("Token is malformed") from e

    signature = data.get('signature')
    payload = {field: data.get(field) for field in PAYLOAD_FIELDS}
    if not isinstance(signature, str) or any(value is None for value in payload.values()):
        raise SignatureError("Token is malformed")

    if not hmac.compare_digest(_sign(payload), signature):
        logger.warning(f"[CheckIn] Signature mismatch for {payload['booking_code']}")
        raise SignatureError("Token signature is invalid")

    try:
        expires_at = from_db_datetime(payload['expires_at'])
    except ValueError as e:
        raise SignatureError("Token is malformed") from e
    if now > expires_at:
        raise ExpiredTokenError(
            f"Token expired at {payload['expires_at']}",
            expires_at=payload['expires_at'],
        )

    booking = get_booking_by_code(payload['booking_code'])
    if not booking:
        raise NotFoundError(f"Booking {payload['booking_code']} not found", code='booking_not_found')
    if booking['status'] == CANCELLED:
        raise EligibilityError("Booking has been cancelled", code='booking_cancelled', booking_status=CANCELLED)

    allows_check_in = can_check_in(booking, now)
    allows_check_out = can_check_out(booking)
    action = 'check_in' if allows_check_in else 'check_out' if allows_check_out else None

    return {
        'booking_id': booking['id'],
        'booking_code': booking['booking_code'],
        'space_id': booking['space_id'],
        'customer_id': booking['customer_id'],
        'status': booking['status'],
        'expires_at': payload['expires_at'],
        'can_check_in': allows_check_in,
        'can_check_out': allows_check_out,
        'action': action,
    }


def check_in_with_token(token: str, staff_id: str, now: datetime = None) -> Dict[str, Any]:
    """Verify a token, then check its booking in."""
    now = now or get_now()
    verified = validate_token(token, now=now)
    return check_in(verified['booking_id'], staff_id, now=now)


def check_out_with_token(token: str, staff_id: str, now: datetime = None) -> Dict[str, Any]:
    """Verify a token, then check its booking out."""
    now = now or get_now()
    verified = validate_token(token, now=now)
    return check_out(verified['booking_id'], staff_id, now=now)
