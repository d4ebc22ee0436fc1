"""Razorpay adapters for the payment gateway and its webhook callbacks."""

from __future__ import annotations

import razorpay
import structlog
from razorpay.errors import SignatureVerificationError as RazorpaySignatureError

from fulfillment.domain.exceptions import ExternalCollaboratorError
from fulfillment.domain.model.order import Order
from fulfillment.domain.model.payment import PaymentReference
from fulfillment.domain.ports import CallbackVerifier, PaymentGateway

logger = structlog.get_logger(__name__)


def create_client(key_id: str, key_secret: str) -> razorpay.Client:
    return razorpay.Client(auth=(key_id, key_secret))


class RazorpayGateway(PaymentGateway):
    """Registers an order total with Razorpay; the order ID travels as the receipt."""

    def __init__(self, client: razorpay.Client) -> None:
        self._client = client

    def create_payment_reference(self, order: Order) -> PaymentReference:
        amount_minor = order.total_amount.to_minor_units()
        try:
            response = self._client.order.create(data={
                "amount": amount_minor,
                "currency": order.currency,
                "receipt": order.order_id,
                "notes": {"store_id": order.store_id},
            })
        except Exception as exc:
            logger.exception("payment_reference_failed", order_id=order.order_id)
            raise ExternalCollaboratorError(
                f"Payment gateway rejected order {order.order_id}: {exc}"
            ) from exc
        return PaymentReference(
            reference=response["id"],
            order_id=order.order_id,
            amount=order.total_amount,
        )


class RazorpayCallbackVerifier(CallbackVerifier):
    """HMAC-SHA256 check of the raw webhook body against the webhook secret."""

    def __init__(self, client: razorpay.Client, webhook_secret: str) -> None:
        self._client = client
        self._secret = webhook_secret

    def verify(self, body: bytes, signature: str | None) -> bool:
        if not signature or not self._secret:
            return False
        try:
            return bool(
                self._client.utility.verify_webhook_signature(
                    body.decode("utf-8"), signature, self._secret
                )
            )
        except (RazorpaySignatureError, UnicodeDecodeError):
            return False
