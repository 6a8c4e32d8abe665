"""
Stripe payments for catering orders
"""
import json
import logging
from typing import Any, Dict, Optional
import stripe
from catering_api.core.config import settings

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Raised when the payment provider rejects a request"""


class PaymentService:
    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.stripe_secret_key = secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY
        self.stripe_public_key = settings.STRIPE_PUBLIC_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        if self.stripe_secret_key:
            stripe.api_key = self.stripe_secret_key

    @property
    def enabled(self) -> bool:
        return bool(self.stripe_secret_key)

    def create_payment_intent(self, amount_cents: int, order_id: int, order_number: str) -> Dict[str, Any]:
        """Create a card payment intent for the full order total"""
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=settings.PAYMENT_CURRENCY,
                payment_method_types=["card"],
                metadata={"order_id": str(order_id), "order_number": order_number},
            )
        except stripe.StripeError as e:
            logger.error(f"Payment intent creation error for order {order_id}: {e}")
            raise PaymentError(str(e))

        logger.info(f"Payment intent {intent.id} created for order {order_id}")
        return {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "amount": amount_cents,
            "currency": settings.PAYMENT_CURRENCY,
        }

    def get_payment_status(self, payment_intent_id: str) -> Dict[str, Any]:
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"Payment status lookup error for {payment_intent_id}: {e}")
            raise PaymentError(str(e))

        return {
            "paymentIntentId": intent.id,
            "status": intent.status,
            "amount": intent.amount,
            "currency": intent.currency,
            "orderId": getattr(intent.metadata, "order_id", None),
        }

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify the Stripe-Signature header and return the event as a plain dict"""
        if not self.webhook_secret:
            raise PaymentError("Webhook secret not configured")
        try:
            stripe.Webhook.construct_event(payload, signature or "", self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Rejected Stripe webhook: {e}")
            raise PaymentError("Invalid webhook signature")
        return json.loads(payload)


payment_service = PaymentService()
