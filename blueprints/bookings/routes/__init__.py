"""
Booking engine route modules.
Each module exposes register_routes(bp).
"""

from flask import request

from utils.errors import ValidationError
from utils.messages import get_message


def get_json_body() -> dict:
    """Request JSON object or ValidationError."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError(get_message('json_required'), code='json_required')
    return data


def require_fields(data: dict, *fields) -> None:
    """Raise ValidationError naming the first missing field."""
    for field in fields:
        if data.get(field) in (None, ''):
            raise ValidationError(get_message('field_required', field=field), code='missing_field', field=field)
