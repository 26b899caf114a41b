"""
API routes for service-level JSON endpoints.
"""

from flask import jsonify, Blueprint, current_app

from database import get_db

api_bp = Blueprint('api', __name__)


@api_bp.route('/health')
def health_check():
    """
    Health check endpoint (no authentication required).

    Returns:
        JSON with status, version and database reachability
    """
    get_db().execute('SELECT 1').fetchone()
    return jsonify({
        'status': 'ok',
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'app': current_app.config.get('APP_NAME', 'VenueBookings')
    })
