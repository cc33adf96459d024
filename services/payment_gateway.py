"""
Thin adapter over the Razorpay SDK.

The rest of the code talks to the gateway only through this class so it
can be replaced by a fake in tests (see get_payment_gateway in utils/deps).
"""

import razorpay
from razorpay.errors import SignatureVerificationError, BadRequestError, ServerError, GatewayError
from core.config import settings
from core.exceptions import PaymentGatewayError
from utils.logger import get_logger

logger = get_logger(__name__)


class RazorpayGateway:

    def __init__(self, key_id: str, key_secret: str):
        self.key_id = key_id
        self.client = razorpay.Client(auth=(key_id, key_secret))

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict | None = None) -> dict:
        """
        Creates a gateway order.

        Args:
            amount: Amount in minor units (paise)
            currency: ISO currency code
            receipt: Our order id, shown on the Razorpay dashboard
            notes: Free-form key/values stored with the gateway order

        Returns:
            Gateway order dict ({"id", "amount", "currency", ...})
        """
        try:
            return self.client.order.create(data={
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
                "payment_capture": 1
            })
        except (BadRequestError, ServerError, GatewayError) as e:
            logger.error(
                f"Razorpay order creation failed: {str(e)}",
                extra={"receipt": receipt, "error_type": type(e).__name__},
                exc_info=True
            )
            raise PaymentGatewayError("Could not create payment order") from e

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256 of "order_id|payment_id" with the key secret, checked by the SDK."""
        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature
            })
            return True
        except SignatureVerificationError:
            return False


_gateway: RazorpayGateway | None = None


def get_gateway() -> RazorpayGateway:
    global _gateway
    if _gateway is None:
        _gateway = RazorpayGateway(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
    return _gateway
