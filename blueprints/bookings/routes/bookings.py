"""
Booking API endpoints: create, read, cancel, payment events, check-in tokens.
"""

from flask import request

from blueprints.bookings.routes import get_json_body, require_fields
from blueprints.bookings.services.checkin_token_service import issue_token
from blueprints.bookings.services.lifecycle_service import (
    cancel_booking,
    create_booking,
    get_booking,
    record_payment_event,
)
from utils.api_response import api_success
from utils.messages import get_message


def register_routes(bp):
    """Register booking API routes on the blueprint."""

    @bp.route('/bookings', methods=['POST'])
    def create_booking_route():
        """
        Create a booking.

        Request JSON:
        {
            "space_id": 1,
            "customer_id": "cust-42",
            "date": "2026-11-07",
            "start_time": "10:00",
            "end_time": "12:00",
            "promo_code": "WELCOME10",     // optional
            "payment_status": "pending"    // optional, or "paid"
        }
        """
        data = get_json_body()
        require_fields(data, 'space_id', 'customer_id', 'date', 'start_time', 'end_time')

        booking = create_booking(
            space_id=data['space_id'],
            customer_id=data['customer_id'],
            booking_date=data['date'],
            start_time=data['start_time'],
            end_time=data['end_time'],
            promo_code=data.get('promo_code') or None,
            payment_status=data.get('payment_status') or 'pending',
        )
        return api_success(
            data=booking,
            message=get_message('booking_created', code=booking['booking_code']),
            status=201,
        )

    @bp.route('/bookings/<int:booking_id>', methods=['GET'])
    def get_booking_route(booking_id):
        """Get a booking; ?history=1 adds its status history."""
        include_history = request.args.get('history', '').lower() in ('1', 'true', 'yes')
        return api_success(data=get_booking(booking_id, include_history=include_history))

    @bp.route('/bookings/<int:booking_id>/cancel', methods=['POST'])
    def cancel_booking_route(booking_id):
        """
        Cancel a booking.

        Request JSON: {"reason": "...", "cancelled_by": "cust-42"}
        """
        data = request.get_json(silent=True) or {}
        result = cancel_booking(
            booking_id,
            reason=data.get('reason') or '',
            cancelled_by=data.get('cancelled_by'),
        )
        return api_success(
            data=result['booking'],
            message=get_message('booking_cancelled', code=result['booking']['booking_code']),
            refund=result['refund'],
        )

    @bp.route('/bookings/<int:booking_id>/payment', methods=['POST'])
    def payment_event_route(booking_id):
        """
        Payment collaborator callback.

        Request JSON: {"event": "paid" | "failed" | "refunded"}
        """
        data = get_json_body()
        require_fields(data, 'event')

        booking = record_payment_event(booking_id, data['event'])
        return api_success(
            data=booking,
            message=get_message('payment_recorded', code=booking['booking_code']),
        )

    @bp.route('/bookings/<int:booking_id>/token', methods=['GET'])
    def booking_token_route(booking_id):
        """Issue a check-in token for a booking."""
        token = issue_token(booking_id)
        return api_success(data=token, message=get_message('token_issued', code=token['booking_code']))
