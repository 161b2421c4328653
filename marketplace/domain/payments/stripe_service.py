"""Stripe service - hosted checkout sessions and webhook verification"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import stripe

from ... import config
from ...errors import ConfigurationError, UpstreamError, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass
class CheckoutSession:
    id: str
    url: Optional[str]


class StripeService:
    """Service for Stripe API operations; credentials are read on each call"""

    def is_available(self) -> bool:
        """Check if a Stripe secret key is configured"""
        return bool(config.STRIPE_SECRET_KEY)

    def require_available(self) -> None:
        if not self.is_available():
            logger.error("❌ STRIPE_SECRET_KEY not set; payment endpoints are disabled")
            raise ConfigurationError("Payment provider is not configured")

    def create_checkout_session(
        self,
        name: str,
        description: str,
        amount: float,
        success_url: str,
        cancel_url: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> CheckoutSession:
        """
        Create a one-item hosted checkout session.

        Args:
            name: Line item name shown on the checkout page
            description: Line item description
            amount: Amount in dollars
            success_url: Redirect after payment
            cancel_url: Redirect when the customer backs out
            metadata: Echoed back on the webhook (jobId, type, ...)
        """
        self.require_available()
        try:
            session = stripe.checkout.Session.create(
                api_key=config.STRIPE_SECRET_KEY,
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": config.STRIPE_CURRENCY,
                            "product_data": {"name": name, "description": description},
                            "unit_amount": int(round(amount * 100)),
                        },
                        "quantity": 1,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata or {},
            )
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe checkout session creation failed: {e}")
            raise UpstreamError("Failed to create checkout session") from e

        logger.info(f"💳 Checkout session created: {session.id}")
        return CheckoutSession(id=session.id, url=session.url)

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        self.require_available()
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=config.STRIPE_SECRET_KEY)
        except stripe.StripeError as e:
            logger.error(f"❌ Failed to retrieve checkout session {session_id}: {e}")
            raise UpstreamError("Failed to retrieve checkout session") from e
        return CheckoutSession(id=session.id, url=session.url)

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        """Verify the stripe-signature header and return the event as a plain dict"""
        if not signature:
            raise ValidationFailed("Missing stripe-signature header")
        if not config.STRIPE_WEBHOOK_SECRET:
            logger.error("❌ STRIPE_WEBHOOK_SECRET not set; cannot verify webhooks")
            raise ConfigurationError("Webhook secret not configured")
        try:
            stripe.Webhook.construct_event(payload, signature, config.STRIPE_WEBHOOK_SECRET)
        except Exception as e:
            logger.error(f"❌ Stripe webhook verification failed: {e}")
            raise ValidationFailed(f"Webhook Error: {e}") from e
        return json.loads(payload)
