"""
Centralized API messages.
All user-facing success text returned by the booking endpoints.
"""

MESSAGES = {
    # Success messages
    'booking_created': 'Booking {code} created',
    'booking_cancelled': 'Booking {code} cancelled',
    'payment_recorded': 'Payment event recorded for {code}',
    'checked_in': 'Booking {code} checked in',
    'checked_out': 'Booking {code} checked out',
    'token_issued': 'Check-in token issued for {code}',
    'token_valid': 'Token is valid',
    'slot_available': 'Requested time is available',
    'slot_unavailable': 'Requested time is not available',

    # Error messages
    'json_required': 'A JSON body is required',
    'field_required': 'Field {field} is required',
    'internal_error': 'Internal server error',
    'not_found': 'Resource not found',
    'method_not_allowed': 'Method not allowed',

    # Booking states
    'state_pending': 'Pending',
    'state_confirmed': 'Confirmed',
    'state_checked_in': 'Checked in',
    'state_checked_out': 'Checked out',
    'state_completed': 'Completed',
    'state_cancelled': 'Cancelled',
    'state_no_show': 'No-show',
}


def get_message(key: str, **kwargs) -> str:
    """
    Get message with optional formatting.

    Args:
        key: Message key
        **kwargs: Format parameters

    Returns:
        Formatted message or key if not found
    """
    message = MESSAGES.get(key, key)
    if kwargs:
        return message.format(**kwargs)
    return message
