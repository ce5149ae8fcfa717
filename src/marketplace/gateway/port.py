"""Payment provider port (abstract interface).

Defines the contract that payment provider adapters must implement: webhook
authentication and read access to checkout sessions, payment intents and
charges on a connected account. StripeProvider talks to the Stripe API;
FakePaymentProvider serves scripted objects in development and tests.
"""

from abc import ABC, abstractmethod


class PaymentProvider(ABC):
    """Abstract payment provider interface."""

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        """Authenticate a webhook payload and return the parsed event.

        Raises:
            InvalidSignature: the payload could not be authenticated.
            MissingWebhookSecret: no signing secret is configured.
        """
        ...

    @abstractmethod
    def retrieve_checkout_session(self, session_id: str, stripe_account: str | None = None) -> dict:
        """Checkout session with line items, their prices and products expanded."""
        ...

    @abstractmethod
    def retrieve_payment_intent(self, payment_intent_id: str, stripe_account: str | None = None) -> dict:
        ...

    @abstractmethod
    def retrieve_charge(self, charge_id: str, stripe_account: str | None = None) -> dict:
        ...
