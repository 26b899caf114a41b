"""
VenueBookings - Venue Booking Scheduling, Pricing & Lifecycle Engine
Flask application factory and initialization
"""

import os
import click
import logging
from flask import Flask, g
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import database functions
from database import close_db, init_db

from utils.api_response import api_error
from utils.errors import BookingEngineError
from utils.messages import get_message


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    config_class = config[config_name]
    if hasattr(config_class, 'validate'):
        config_class.validate()

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config_class)

    # Initialize collaborators
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    return app


def initialize_extensions(app):
    """Attach external collaborators to the app."""
    from blueprints.bookings.services.payment_collaborator import PaymentCollaborator

    app.extensions['payment_collaborator'] = PaymentCollaborator()


def register_blueprints(app):
    """Register Flask blueprints."""
    # Import blueprints
    from blueprints.api.routes import api_bp
    from blueprints.bookings import bookings_bp

    # Register blueprints
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(bookings_bp, url_prefix='/api')


def register_error_handlers(app):
    """Register error handlers."""

    @app.errorhandler(BookingEngineError)
    def booking_engine_error(error):
        """Map typed engine errors to JSON with their status code."""
        app.logger.info(f"{type(error).__name__} [{error.code}]: {error.message}")
        return api_error(error.message, status=error.status_code, code=error.code, **error.details)

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        return api_error(get_message('not_found'), status=404, code='not_found')

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        """Handle 405 errors."""
        return api_error(get_message('method_not_allowed'), status=405, code='method_not_allowed')

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        # Rollback database on error
        db = g.get('db')
        if db:
            db.rollback()
        return api_error(get_message('internal_error'), status=500, code='internal_error')


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    @click.option('--no-seed', is_flag=True, help='Create the schema without demo data.')
    def init_db_command(no_seed):
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db(seed=not no_seed)
        click.echo('Database initialized successfully!')

    @app.cli.command('mark-no-shows')
    def mark_no_shows_command():
        """Mark confirmed bookings past their check-in grace window as no-show."""
        from blueprints.bookings.services.lifecycle_service import sweep_no_shows

        with app.app_context():
            marked = sweep_no_shows()
        click.echo(f'Marked {len(marked)} booking(s) as no-show')
        for code in marked:
            click.echo(f'  {code}')


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/venue_bookings.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        # Engine modules log through module-level loggers
        engine_logger = logging.getLogger('blueprints')
        engine_logger.addHandler(file_handler)
        engine_logger.setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('VenueBookings startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)
        logging.getLogger('blueprints').setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    # host='0.0.0.0' allows access from other devices on the network
    app.run(host='0.0.0.0', debug=True)
