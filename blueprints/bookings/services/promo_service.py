"""
Promo Service - validation and at-most-once redemption of discount codes.
"""

import logging
from datetime import datetime
from typing import Dict, Any

from models.promo_code import (
    get_promo_code_by_code,
    increment_usage_if_available,
    normalize_code,
)
from utils.datetime_helpers import from_db_datetime
from utils.errors import NotFoundError, PromoExhaustedError, ValidationError

logger = logging.getLogger(__name__)


def promo_terms(promo: dict) -> Dict[str, Any]:
    """Discount terms handed to the pricing engine."""
    return {
        'code': promo['code'],
        'discount_type': promo['discount_type'],
        'value': promo['value'],
        'min_order_amount': promo.get('min_order_amount'),
        'max_discount_amount': promo.get('max_discount_amount'),
    }


def validate_promo_code(code: str, now: datetime, cursor=None) -> Dict[str, Any]:
    """
    Check a promo code is currently redeemable, without consuming it.

    Args:
        code: Promo code (any case)
        now: Current time
        cursor: Optional cursor of an open transaction

    Returns:
        dict of discount terms

    Raises:
        NotFoundError: Unknown code
        ValidationError: Inactive, not yet valid, or expired
        PromoExhaustedError: Usage limit reached
    """
    normalized = normalize_code(code)
    promo = get_promo_code_by_code(normalized, cursor=cursor)
    if not promo:
        raise NotFoundError(f"Promo code {normalized} not found", code='promo_not_found')

    if not promo['is_active']:
        raise ValidationError(f"Promo code {normalized} is inactive", code='promo_inactive')

    if now < from_db_datetime(promo['valid_from']):
        raise ValidationError(f"Promo code {normalized} is not yet active", code='promo_not_started')

    if now > from_db_datetime(promo['valid_until']):
        raise ValidationError(f"Promo code {normalized} has expired", code='promo_expired')

    usage_limit = promo.get('usage_limit')
    if usage_limit is not None and promo['used_count'] >= usage_limit:
        raise PromoExhaustedError(f"Promo code {normalized} usage limit reached", promo_code=normalized)

    return promo_terms(promo)


def redeem_promo_code(code: str, now: datetime, cursor=None) -> Dict[str, Any]:
    """
    Validate and consume one use of a promo code.

    The consume step is a single compare-and-increment in the database.
    When it matches no row after validation passed, another request took
    the last use in between.

    Args:
        code: Promo code
        now: Current time
        cursor: Cursor of an open transaction (booking creation); when
            omitted the redemption is committed on its own

    Returns:
        dict of discount terms

    Raises:
        NotFoundError, ValidationError: As validate_promo_code
        PromoExhaustedError: Limit reached, including concurrently
    """
    terms = validate_promo_code(code, now, cursor=cursor)

    if not increment_usage_if_available(terms['code'], now, cursor=cursor):
        logger.info(f"[Promo] {terms['code']} exhausted during redemption")
        raise PromoExhaustedError(f"Promo code {terms['code']} usage limit reached", promo_code=terms['code'])

    logger.info(f"[Promo] {terms['code']} redeemed")
    return terms
