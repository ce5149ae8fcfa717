"""Stripe payment provider adapter.

Uses the stripe-python SDK. Every call passes its own api key and connected
account rather than mutating the module-level ``stripe.api_key``.
"""

import json

import stripe
import structlog

from marketplace.errors import InvalidSignature, MissingWebhookSecret
from marketplace.gateway.port import PaymentProvider

logger = structlog.get_logger(__name__)

CHECKOUT_SESSION_EXPANSIONS = ["line_items.data.price.product", "customer_details"]


def _as_dict(stripe_object) -> dict:
    return json.loads(str(stripe_object))


class StripeProvider(PaymentProvider):
    def __init__(self, api_key: str | None, webhook_secret: str | None) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        if not self.webhook_secret:
            raise MissingWebhookSecret("STRIPE_WEBHOOK_SECRET is not configured")
        if not signature:
            raise InvalidSignature("Missing Stripe-Signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Webhook signature invalid", error=str(exc))
            raise InvalidSignature("Invalid webhook signature") from exc
        except ValueError as exc:
            raise InvalidSignature("Webhook payload is not valid JSON") from exc

        return json.loads(payload)

    def retrieve_checkout_session(self, session_id: str, stripe_account: str | None = None) -> dict:
        session = stripe.checkout.Session.retrieve(
            session_id,
            expand=CHECKOUT_SESSION_EXPANSIONS,
            api_key=self.api_key,
            stripe_account=stripe_account,
        )
        return _as_dict(session)

    def retrieve_payment_intent(self, payment_intent_id: str, stripe_account: str | None = None) -> dict:
        payment_intent = stripe.PaymentIntent.retrieve(
            payment_intent_id,
            api_key=self.api_key,
            stripe_account=stripe_account,
        )
        return _as_dict(payment_intent)

    def retrieve_charge(self, charge_id: str, stripe_account: str | None = None) -> dict:
        charge = stripe.Charge.retrieve(charge_id, api_key=self.api_key, stripe_account=stripe_account)
        return _as_dict(charge)
