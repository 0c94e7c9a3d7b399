"""Stripe Checkout integration for buying credit packs.

`create_checkout` starts a one-off payment for the configured price and tags
the session with the buyer and the number of credits. Stripe later calls the
webhook; `parse_webhook` verifies the signature and turns a paid
`checkout.session.completed` event into a `PaymentConfirmation`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import stripe

from models.credit_balance import PaymentConfirmation
from services.errors import PaymentUnavailable, ValidationError

LOGGER = logging.getLogger(__name__)

COMPLETED_EVENT = "checkout.session.completed"


class CheckoutService:
    """Create Stripe checkout sessions and verify their webhooks.

    Args:
        api_key: Stripe secret key, passed per request rather than set globally.
        price_id: Stripe price of one credit pack.
        host: Base URL the buyer returns to after checkout.
        webhook_secret: Signing secret of the webhook endpoint.
        credits_per_purchase: Credits granted by one completed checkout.
    """

    def __init__(
        self,
        api_key: str,
        price_id: str,
        host: str,
        *,
        webhook_secret: Optional[str] = None,
        credits_per_purchase: int = 100,
    ) -> None:
        if not api_key:
            raise ValueError("A Stripe secret key is required.")
        if not price_id:
            raise ValueError("A Stripe price id is required.")
        if not host:
            raise ValueError("Missing Host")
        self.api_key = api_key
        self.price_id = price_id
        self.host = host.rstrip("/")
        self.webhook_secret = webhook_secret
        self.credits_per_purchase = credits_per_purchase

    async def create_checkout(self, user_id: str) -> str:
        """Create a checkout session for `user_id` and return its redirect URL."""
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self.api_key,
                payment_method_types=["card"],
                metadata={"userId": user_id, "credits": str(self.credits_per_purchase)},
                line_items=[{"price": self.price_id, "quantity": 1}],
                mode="payment",
                success_url=f"{self.host}/",
                cancel_url=f"{self.host}/",
            )
        except stripe.StripeError as exc:
            LOGGER.error("Stripe checkout session creation failed: %s", exc)
            raise PaymentUnavailable("Could not create checkout session") from exc

        url = getattr(session, "url", None)
        if not url:
            raise PaymentUnavailable("Could not create checkout session")
        return url

    def parse_webhook(self, payload: bytes, signature: str) -> Optional[PaymentConfirmation]:
        """Verify a webhook delivery and extract a paid checkout, if any.

        Returns:
            A PaymentConfirmation, or None for events that do not grant credits.

        Raises:
            PaymentUnavailable: If no webhook secret is configured.
            ValidationError: If the signature or payload is invalid.
        """
        if not self.webhook_secret:
            raise PaymentUnavailable("Payment webhook is not configured")
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
            event = json.loads(payload)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            LOGGER.warning("Rejected payment webhook: %s", exc)
            raise ValidationError("Invalid payment webhook") from exc

        if event.get("type") != COMPLETED_EVENT:
            return None
        return confirmation_from_session(event["data"]["object"])


def confirmation_from_session(session: Any) -> Optional[PaymentConfirmation]:
    """Build a PaymentConfirmation from a checkout session object or dict."""
    if session.get("payment_status") != "paid":
        return None
    metadata = session.get("metadata") or {}
    user_id = metadata.get("userId")
    try:
        credits = int(metadata.get("credits") or 0)
    except (TypeError, ValueError):
        credits = 0
    session_id = session.get("id")
    if not session_id:
        LOGGER.warning("Paid checkout for %s has no session id", user_id)
        return None
    if not user_id or credits <= 0:
        LOGGER.warning("Paid checkout %s is missing buyer metadata", session_id)
        return None
    return PaymentConfirmation(event_id=session_id, user_id=user_id, credits=credits)
