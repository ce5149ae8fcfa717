"""Scripted fake payment provider for development and testing.

Serves checkout sessions, payment intents and charges registered ahead of
time and accepts a fixed test signature instead of an HMAC. Every call is
recorded in ``calls`` for assertions.
"""

import json

from marketplace.errors import InvalidSignature
from marketplace.gateway.port import PaymentProvider

TEST_SIGNATURE = "test-signature"


class FakePaymentProvider(PaymentProvider):
    def __init__(self) -> None:
        self.sessions: dict[str, dict] = {}
        self.payment_intents: dict[str, dict] = {}
        self.charges: dict[str, dict] = {}
        self.calls: list[dict] = []

    def add_checkout_session(self, session: dict) -> None:
        self.sessions[session["id"]] = session

    def add_payment_intent(self, payment_intent: dict) -> None:
        self.payment_intents[payment_intent["id"]] = payment_intent

    def add_charge(self, charge: dict) -> None:
        self.charges[charge["id"]] = charge

    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        self.calls.append({"method": "construct_event", "signature": signature})
        if signature != TEST_SIGNATURE:
            raise InvalidSignature("Invalid webhook signature")
        try:
            return json.loads(payload)
        except ValueError as exc:
            raise InvalidSignature("Webhook payload is not valid JSON") from exc

    def retrieve_checkout_session(self, session_id: str, stripe_account: str | None = None) -> dict:
        self.calls.append({"method": "retrieve_checkout_session", "id": session_id, "stripe_account": stripe_account})
        return self._lookup(self.sessions, session_id, "checkout session")

    def retrieve_payment_intent(self, payment_intent_id: str, stripe_account: str | None = None) -> dict:
        self.calls.append(
            {"method": "retrieve_payment_intent", "id": payment_intent_id, "stripe_account": stripe_account}
        )
        return self._lookup(self.payment_intents, payment_intent_id, "payment intent")

    def retrieve_charge(self, charge_id: str, stripe_account: str | None = None) -> dict:
        self.calls.append({"method": "retrieve_charge", "id": charge_id, "stripe_account": stripe_account})
        return self._lookup(self.charges, charge_id, "charge")

    @staticmethod
    def _lookup(store: dict, object_id: str, kind: str) -> dict:
        if object_id not in store:
            raise LookupError(f"No such {kind}: {object_id}")
        return store[object_id]
