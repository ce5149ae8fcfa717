"""Checkout payload normalization: metadata, line items, totals and names."""

import secrets
import string
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from marketplace.catalogue.product import REFUND_POLICY_DAYS
from marketplace.errors import UnresolvableProductId

ORDER_NUMBER_PREFIX = "AH-"
_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits

_CURRENCY_SYMBOLS = {"USD": "$", "CAD": "$", "AUD": "$", "EUR": "€", "GBP": "£"}


@dataclass(frozen=True)
class CheckoutMetadata:
    """Fields the storefront attaches to a checkout session."""

    buyer_id: str | None = None
    tenant_id: str | None = None
    tenant_slug: str | None = None
    seller_stripe_account_id: str | None = None
    product_ids: tuple[str, ...] = ()


def parse_checkout_metadata(metadata: dict | None) -> CheckoutMetadata:
    metadata = metadata or {}
    raw_ids = metadata.get("productIds") or ""
    if isinstance(raw_ids, str):
        raw_ids = raw_ids.split(",")
    product_ids = tuple(dict.fromkeys(pid.strip() for pid in raw_ids if pid and pid.strip()))

    return CheckoutMetadata(
        buyer_id=metadata.get("userId") or metadata.get("buyerId") or None,
        tenant_id=metadata.get("tenantId") or None,
        tenant_slug=metadata.get("tenantSlug") or None,
        seller_stripe_account_id=metadata.get("sellerStripeAccountId") or None,
        product_ids=product_ids,
    )


@dataclass
class LineItemDraft:
    """A provider line item resolved to one of our products."""

    product_id: str
    name: str
    quantity: int
    unit_amount: int
    amount_subtotal: int
    amount_tax: int | None
    amount_total: int
    refund_policy: str | None = None
    returns_accepted_through: datetime | None = None


def _product_object(line: dict) -> dict:
    product = ((line.get("price") or {}).get("product")) or {}
    return product if isinstance(product, dict) else {}


def require_product_id(line: dict) -> str:
    """Our product id, carried in the expanded provider product's metadata."""
    product_id = (_product_object(line).get("metadata") or {}).get("id")
    if not product_id:
        raise UnresolvableProductId(f"Line item {line.get('id', '?')} has no product id in its metadata")
    return str(product_id)


def line_total_cents(line: dict) -> int:
    """The line's total, falling back to unit amount × quantity."""
    amount_total = line.get("amount_total")
    if isinstance(amount_total, int):
        return amount_total
    unit_amount = (line.get("price") or {}).get("unit_amount") or 0
    return int(unit_amount) * int(line.get("quantity") or 1)


def order_total_cents(lines: Iterable[dict], payment_intent: dict | None = None) -> int:
    """Sum of line totals, or the captured amount when the lines sum to nothing."""
    total = sum(line_total_cents(line) for line in lines)
    if total <= 0 and payment_intent:
        total = int(payment_intent.get("amount_received") or 0)
    return total


def returns_cutoff(refund_policy: str | None, purchased_at: datetime) -> datetime | None:
    """Last moment a return is accepted, or None when the policy is unknown."""
    days = REFUND_POLICY_DAYS.get(refund_policy or "")
    if days is None:
        return None
    return purchased_at + timedelta(days=days)


def earliest_cutoff(drafts: Iterable[LineItemDraft]) -> datetime | None:
    cutoffs = [d.returns_accepted_through for d in drafts if d.returns_accepted_through is not None]
    return min(cutoffs) if cutoffs else None


def build_line_item_drafts(
    lines: Iterable[dict],
    refund_policies: dict[str, str | None],
    purchased_at: datetime,
) -> list[LineItemDraft]:
    """Resolve every provider line; any line without a product id fails the checkout."""
    drafts = []
    for line in lines:
        product_id = require_product_id(line)
        quantity = int(line.get("quantity") or 1)
        unit_amount = int((line.get("price") or {}).get("unit_amount") or 0)
        amount_total = line_total_cents(line)
        policy = refund_policies.get(product_id)
        drafts.append(
            LineItemDraft(
                product_id=product_id,
                name=_product_object(line).get("name") or line.get("description") or "Item",
                quantity=quantity,
                unit_amount=unit_amount,
                amount_subtotal=int(line.get("amount_subtotal") or unit_amount * quantity),
                amount_tax=line.get("amount_tax"),
                amount_total=amount_total,
                refund_policy=policy,
                returns_accepted_through=returns_cutoff(policy, purchased_at),
            )
        )
    return drafts


def to_quantity_map(items: Iterable) -> dict[str, int]:
    """Sum quantities per product id; a missing quantity counts as one."""
    quantities: dict[str, int] = {}
    for item in items:
        product_id = str(item.product_id)
        quantities[product_id] = quantities.get(product_id, 0) + (item.quantity or 1)
    return quantities


def order_display_name(names: list[str]) -> str:
    if not names:
        return "Order"
    if len(names) == 1:
        return names[0]
    return f"{names[0]} (+{len(names) - 1} more)"


def generate_order_number() -> str:
    return ORDER_NUMBER_PREFIX + "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(8))


def format_cents(cents: int | None, currency: str = "USD") -> str:
    """Render minor units for humans: ``$12.34``, or ``12.34 JPY`` without a symbol."""
    amount = f"{(cents or 0) / 100:,.2f}"
    symbol = _CURRENCY_SYMBOLS.get((currency or "").upper())
    if symbol:
        return f"{symbol}{amount}"
    return f"{amount} {(currency or '').upper()}".strip()
