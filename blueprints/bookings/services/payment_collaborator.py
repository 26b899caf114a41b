"""
Payment collaborator seam.

Capture and settlement live in an external payment service. The engine only
tells it when a cancelled booking needs a refund; the amount is worked out
there from the space's cancellation policy.
"""

import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class PaymentCollaborator:
    """Default collaborator: records refund requests in the log only."""

    def __init__(self):
        self.refund_requests = []

    def request_refund(self, booking: dict, cancellation_policy: Optional[dict]) -> Dict[str, Any]:
        """
        Ask the payment service to refund a cancelled booking.

        Args:
            booking: Cancelled booking dict
            cancellation_policy: The space's policy, passed through untouched

        Returns:
            dict acknowledging the request
        """
        request = {
            'booking_code': booking['booking_code'],
            'payment_status': booking['payment_status'],
            'total_amount': booking['total_amount'],
            'currency': booking['currency'],
            'cancellation_policy': cancellation_policy,
        }
        self.refund_requests.append(request)
        logger.info(
            f"[Payments] Refund requested for {booking['booking_code']} "
            f"({booking['total_amount']} {booking['currency']}, payment={booking['payment_status']})"
        )
        return {'requested': True, 'booking_code': booking['booking_code']}
