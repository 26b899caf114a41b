"""
Typed errors raised by the booking engine.

Every failure path of the engine raises one of these so the HTTP layer can map
it to a distinct status code. Nothing here is fatal to the process.
"""


class BookingEngineError(Exception):
    """Base class for all engine errors."""

    status_code = 400
    default_code = 'booking_error'

    def __init__(self, message: str, code: str = None, **details):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict:
        """Serializable view used by API responses."""
        return {'error': self.message, 'code': self.code, **self.details}


class ValidationError(BookingEngineError):
    """Malformed input: times, dates, amounts."""

    status_code = 400
    default_code = 'validation_error'


class NotFoundError(BookingEngineError):
    """Unknown booking, space or promo code."""

    status_code = 404
    default_code = 'not_found'


class ConflictError(BookingEngineError):
    """Overlapping booking or an exhausted promo code."""

    status_code = 409
    default_code = 'conflict'


class PromoExhaustedError(ConflictError):
    """Promo usage limit was reached, possibly by a concurrent redemption."""

    default_code = 'promo_exhausted'


class EligibilityError(BookingEngineError):
    """Action attempted outside its window or from the wrong state."""

    status_code = 422
    default_code = 'not_eligible'


class InvalidTransitionError(EligibilityError):
    """Status transition requested from an invalid source status."""

    default_code = 'invalid_transition'

    def __init__(self, current_status: str, requested_status: str, message: str = None):
        super().__init__(
            message or f"Cannot move booking from '{current_status}' to '{requested_status}'",
            current_status=current_status,
            requested_status=requested_status,
        )
        self.current_status = current_status
        self.requested_status = requested_status


class SignatureError(BookingEngineError):
    """Check-in token is malformed or its signature does not match."""

    status_code = 401
    default_code = 'invalid_signature'


class ExpiredTokenError(BookingEngineError):
    """Check-in token is past its expiry."""

    status_code = 401
    default_code = 'token_expired'
