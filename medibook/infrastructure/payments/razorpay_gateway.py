import logging
from typing import Dict, Optional

import razorpay
from razorpay.errors import BadRequestError, GatewayError as RazorpayGatewayError, ServerError, SignatureVerificationError
from requests.exceptions import RequestException

from ...config import settings
from ...application.ports.payment_gateway import GatewayError, GatewayOrder, GatewayRefund, PaymentGateway

logger = logging.getLogger(__name__)

_CLIENT_ERRORS = (BadRequestError, ServerError, RazorpayGatewayError, RequestException)


class RazorpayGateway(PaymentGateway):
    name = "razorpay"

    def __init__(self, key_id: Optional[str] = None, key_secret: Optional[str] = None, client: Optional[razorpay.Client] = None):
        self.key_id = key_id if key_id is not None else settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.client = client or razorpay.Client(auth=(self.key_id, self.key_secret))

    def create_order(self, amount: int, currency: str, receipt: str, notes: Dict[str, str]) -> GatewayOrder:
        try:
            order = self.client.order.create({
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes,
                "payment_capture": 1,
            })
        except _CLIENT_ERRORS as e:
            raise GatewayError(f"Could not create payment order: {e}")
        logger.info(f"Razorpay order created: {order.get('id')}")
        return GatewayOrder(order_id=order["id"], amount=order.get("amount", amount), currency=order.get("currency", currency), raw=order)

    def refund(self, payment_id: str, amount: int, notes: Dict[str, str]) -> GatewayRefund:
        try:
            refund = self.client.payment.refund(payment_id, {
                "amount": amount,
                "speed": "normal",
                "notes": notes,
            })
        except _CLIENT_ERRORS as e:
            raise GatewayError(f"Refund failed: {e}")
        logger.info(f"Razorpay refund {refund.get('id')} for payment {payment_id}")
        return GatewayRefund(refund_id=refund["id"], amount=refund.get("amount", amount), status=refund.get("status", "pending"), raw=refund)

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256 of "order_id|payment_id" under the key secret, checked by the SDK."""
        if not (self.key_secret and order_id and payment_id and signature):
            return False
        if not signature.isascii():
            return False
        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            })
        except SignatureVerificationError:
            return False
        return True
