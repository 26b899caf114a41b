"""
Flask application configuration classes.
Provides configuration for development, production, and testing environments.
"""

import os


class Config:
    """Base configuration class with common settings."""

    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration (raw SQLite, no ORM)
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or 'instance/venue_bookings.db'
    DATABASE_TIMEOUT = float(os.environ.get('DATABASE_TIMEOUT', 10))

    # Timezone used for "now", operating hours and booking windows
    TIMEZONE = os.environ.get('TIMEZONE') or 'Asia/Kolkata'

    # Check-in tokens
    CHECKIN_TOKEN_SECRET = os.environ.get('CHECKIN_TOKEN_SECRET') or 'dev-checkin-secret-change-in-production'
    CHECKIN_TOKEN_TTL_HOURS = int(os.environ.get('CHECKIN_TOKEN_TTL_HOURS', 24))

    # Check-in window around booking start
    CHECKIN_EARLY_MINUTES = int(os.environ.get('CHECKIN_EARLY_MINUTES', 15))
    CHECKIN_GRACE_MINUTES = int(os.environ.get('CHECKIN_GRACE_MINUTES', 30))

    # Pricing defaults (a space's own pricing config wins)
    DEFAULT_TAX_RATE = float(os.environ.get('DEFAULT_TAX_RATE', 18.0))
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY') or 'INR'

    # Alternative slot suggestions on conflict
    ALTERNATIVE_SLOT_STEP_MINUTES = 30
    ALTERNATIVE_SLOT_LIMIT = 3

    # Application settings
    APP_NAME = 'VenueBookings'
    APP_VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    TESTING = False

    @classmethod
    def validate(cls) -> None:
        """Validate that required production environment variables are set."""
        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        token_secret = os.environ.get('CHECKIN_TOKEN_SECRET')
        if not token_secret or len(token_secret) < 32:
            raise ValueError("CHECKIN_TOKEN_SECRET must be set (32+ characters) in production")
        if not os.environ.get('DATABASE_PATH'):
            raise ValueError("DATABASE_PATH environment variable must be set in production")


class TestConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    DATABASE_PATH = os.environ.get('DATABASE_PATH', 'instance/test_venue_bookings.db')
    SECRET_KEY = 'test-secret-key'
    CHECKIN_TOKEN_SECRET = 'test-checkin-secret'
    TIMEZONE = 'UTC'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig
}
