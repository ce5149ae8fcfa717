"""Shipping address resolution across the payload shapes Stripe has used.

Extractors are tried in a fixed order and the first one yielding an address
with a street line wins. Billing details are the last resort.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class ShippingSource(Enum):
    SESSION_COLLECTED = "session.collected_information"
    SESSION_LEGACY = "session.shipping_details"
    PAYMENT_INTENT = "payment_intent.shipping"
    CHARGE = "charge.shipping"
    BILLING = "billing_details"


@dataclass(frozen=True)
class ShippingSnapshot:
    source: ShippingSource
    line1: str
    name: str | None = None
    line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }


@dataclass(frozen=True)
class ShippingSources:
    """The provider objects an address may be read from."""

    session: dict
    payment_intent: dict | None = None
    charge: dict | None = None


def _snapshot(source: ShippingSource, details: dict | None) -> ShippingSnapshot | None:
    if not isinstance(details, dict):
        return None
    address = details.get("address") or {}
    line1 = (address.get("line1") or "").strip()
    if not line1:
        return None
    return ShippingSnapshot(
        source=source,
        line1=line1,
        name=details.get("name"),
        line2=address.get("line2"),
        city=address.get("city"),
        state=address.get("state"),
        postal_code=address.get("postal_code"),
        country=address.get("country"),
    )


def _from_collected_information(sources: ShippingSources) -> ShippingSnapshot | None:
    collected = sources.session.get("collected_information") or {}
    return _snapshot(ShippingSource.SESSION_COLLECTED, collected.get("shipping_details"))


def _from_legacy_session(sources: ShippingSources) -> ShippingSnapshot | None:
    details = sources.session.get("shipping_details") or sources.session.get("shipping")
    return _snapshot(ShippingSource.SESSION_LEGACY, details)


def _from_payment_intent(sources: ShippingSources) -> ShippingSnapshot | None:
    return _snapshot(ShippingSource.PAYMENT_INTENT, (sources.payment_intent or {}).get("shipping"))


def _from_charge(sources: ShippingSources) -> ShippingSnapshot | None:
    return _snapshot(ShippingSource.CHARGE, (sources.charge or {}).get("shipping"))


def _from_billing(sources: ShippingSources) -> ShippingSnapshot | None:
    return _snapshot(ShippingSource.BILLING, sources.session.get("customer_details")) or _snapshot(
        ShippingSource.BILLING, (sources.charge or {}).get("billing_details")
    )


EXTRACTORS: list[Callable[[ShippingSources], ShippingSnapshot | None]] = [
    _from_collected_information,
    _from_legacy_session,
    _from_payment_intent,
    _from_charge,
    _from_billing,
]


def resolve_shipping(sources: ShippingSources) -> ShippingSnapshot | None:
    for extractor in EXTRACTORS:
        snapshot = extractor(sources)
        if snapshot is not None:
            return snapshot
    return None
