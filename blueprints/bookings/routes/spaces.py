"""
Space API endpoints: availability and price quotes.
"""

from flask import request

from blueprints.bookings.routes import require_fields
from blueprints.bookings.services.availability_service import check_availability
from blueprints.bookings.services.pricing_service import price_quote
from utils.api_response import api_success
from utils.messages import get_message


def register_routes(bp):
    """Register space API routes on the blueprint."""

    @bp.route('/spaces/<int:space_id>/availability', methods=['GET'])
    def space_availability(space_id):
        """
        Check whether a window is bookable.

        Query params:
            date: YYYY-MM-DD
            start: HH:MM
            end: HH:MM

        Response JSON:
        {
            "success": true,
            "data": {"available": false, "reason": "booking_conflict",
                     "conflicting_booking_code": "BK...", "suggestions": [...]}
        }
        """
        args = request.args.to_dict()
        require_fields(args, 'date', 'start', 'end')

        result = check_availability(space_id, args['date'], args['start'], args['end'])
        message = get_message('slot_available' if result['available'] else 'slot_unavailable')
        return api_success(data=result, message=message)

    @bp.route('/spaces/<int:space_id>/quote', methods=['GET'])
    def space_quote(space_id):
        """
        Price a window without booking it.

        Query params:
            date, start, end: As for availability
            promo_code: Optional, validated but not consumed
        """
        args = request.args.to_dict()
        require_fields(args, 'date', 'start', 'end')

        quote = price_quote(
            space_id,
            args['date'],
            args['start'],
            args['end'],
            promo_code=args.get('promo_code') or None,
        )
        return api_success(data=quote)
