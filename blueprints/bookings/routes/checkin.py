"""
Check-in API endpoints used by staff devices scanning customer tokens.
"""

from blueprints.bookings.routes import get_json_body, require_fields
from blueprints.bookings.services.checkin_token_service import (
    check_in_with_token,
    check_out_with_token,
    validate_token,
)
from blueprints.bookings.services.lifecycle_service import can_check_in, can_check_out, find_booking_by_code
from utils.api_response import api_success
from utils.datetime_helpers import get_now
from utils.messages import get_message


def register_routes(bp):
    """Register check-in API routes on the blueprint."""

    @bp.route('/checkin/verify', methods=['POST'])
    def verify_token_route():
        """
        Verify a token and report the action it allows.

        Request JSON: {"token": "..."}
        """
        data = get_json_body()
        require_fields(data, 'token')
        return api_success(data=validate_token(data['token']), message=get_message('token_valid'))

    @bp.route('/checkin', methods=['POST'])
    def check_in_route():
        """
        Check a booking in by token.

        Request JSON: {"token": "...", "staff_id": "staff-7"}
        """
        data = get_json_body()
        require_fields(data, 'token', 'staff_id')

        booking = check_in_with_token(data['token'], data['staff_id'])
        return api_success(data=booking, message=get_message('checked_in', code=booking['booking_code']))

    @bp.route('/checkout', methods=['POST'])
    def check_out_route():
        """
        Check a booking out by token.

        Request JSON: {"token": "...", "staff_id": "staff-7"}
        """
        data = get_json_body()
        require_fields(data, 'token', 'staff_id')

        booking = check_out_with_token(data['token'], data['staff_id'])
        return api_success(data=booking, message=get_message('checked_out', code=booking['booking_code']))

    @bp.route('/checkin/lookup/<booking_code>', methods=['GET'])
    def lookup_booking_route(booking_code):
        """Staff lookup by booking code when the customer has no token."""
        booking = find_booking_by_code(booking_code.strip().upper())
        now = get_now()
        booking['can_check_in'] = can_check_in(booking, now)
        booking['can_check_out'] = can_check_out(booking)
        return api_success(data=booking)
