"""
Bookings blueprint initialization.
Registers the booking engine's JSON endpoints.

Route modules:
- routes/spaces.py - Availability and price quotes
- routes/bookings.py - Create, read, cancel, payment events, tokens
- routes/checkin.py - Token verification, check-in and check-out
"""

from flask import Blueprint

bookings_bp = Blueprint('bookings', __name__)

from blueprints.bookings.routes import spaces, bookings, checkin

spaces.register_routes(bookings_bp)
bookings.register_routes(bookings_bp)
checkin.register_routes(bookings_bp)
