"""Lookups that turn checkout references into domain records."""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.account.user import User
from marketplace.catalogue.product import Product
from marketplace.errors import MixedTenantCart, UnresolvedTenant
from marketplace.gateway.port import PaymentProvider
from marketplace.tenant.tenant import Tenant
from marketplace.webhook.line_items import CheckoutMetadata

logger = structlog.get_logger(__name__)


def reference_id(value) -> str | None:
    """Provider references arrive either as bare ids or as expanded objects."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def resolve_tenant(metadata: CheckoutMetadata, stripe_account: str | None) -> Tenant:
    """Tenant from metadata first, then by the connected account on the event."""
    repo = current_domain.repository_for(Tenant)

    tenant = repo.find_by_id(metadata.tenant_id) if metadata.tenant_id else None
    if tenant is None and stripe_account:
        tenant = repo.find_by_stripe_account(stripe_account)
    if tenant is None:
        raise UnresolvedTenant(
            f"No tenant resolved: tenant_id={metadata.tenant_id} tenant_slug={metadata.tenant_slug} "
            f"account={stripe_account}"
        )

    if (
        metadata.seller_stripe_account_id
        and stripe_account
        and metadata.seller_stripe_account_id != stripe_account
    ):
        logger.warning(
            "Connected account mismatch",
            event_account=stripe_account,
            metadata_account=metadata.seller_stripe_account_id,
            tenant_id=str(tenant.id),
        )
    return tenant


def load_products(product_ids: Iterable[str]) -> dict[str, Product]:
    """Products that exist, keyed by id. Missing ids are left out."""
    repo = current_domain.repository_for(Product)
    products = {}
    for product_id in dict.fromkeys(product_ids):
        try:
            products[product_id] = repo.get(product_id)
        except ObjectNotFoundError:
            logger.warning("Checkout references unknown product", product_id=product_id)
    return products


def guard_single_tenant(products: Iterable[Product], tenant: Tenant) -> None:
    """Every product in one checkout must belong to the same tenant."""
    tenant_ids = {str(product.tenant_id) for product in products}
    if len(tenant_ids) > 1:
        raise MixedTenantCart(f"Checkout spans multiple tenants: {sorted(tenant_ids)}")
    if tenant_ids and tenant_ids != {str(tenant.id)}:
        logger.warning(
            "Products belong to a different tenant than the one resolved",
            product_tenant_id=next(iter(tenant_ids)),
            tenant_id=str(tenant.id),
        )


def resolve_user(user_id: str | None) -> User | None:
    if not user_id:
        return None
    try:
        return current_domain.repository_for(User).get(user_id)
    except ObjectNotFoundError:
        return None


@dataclass(frozen=True)
class PaymentDetails:
    payment_intent: dict | None = None
    charge: dict | None = None

    @property
    def payment_intent_id(self) -> str | None:
        return (self.payment_intent or {}).get("id")

    @property
    def charge_id(self) -> str | None:
        return (self.charge or {}).get("id")


def resolve_payment_details(provider: PaymentProvider, session: dict, stripe_account: str | None) -> PaymentDetails:
    """Payment intent and its latest charge, where the session has them."""
    payment_intent_id = reference_id(session.get("payment_intent"))
    if not payment_intent_id:
        logger.info("Checkout session has no payment intent", session_id=session.get("id"))
        return PaymentDetails()

    payment_intent = provider.retrieve_payment_intent(payment_intent_id, stripe_account=stripe_account)
    charge_id = reference_id(payment_intent.get("latest_charge"))
    if not charge_id:
        logger.info("Payment intent has no charge", payment_intent_id=payment_intent_id)
        return PaymentDetails(payment_intent=payment_intent)

    charge = provider.retrieve_charge(charge_id, stripe_account=stripe_account)
    return PaymentDetails(payment_intent=payment_intent, charge=charge)


# ---------------------------------------------------------------------------
# Seller contact
# ---------------------------------------------------------------------------
def seller_recipients(tenant: Tenant, contact: User | None) -> list[str]:
    """Tenant notification address, then the primary contact's email."""
    return [address for address in (tenant.notification_email, contact.email if contact else None) if address]


def seller_display_name(tenant: Tenant, contact: User | None) -> str:
    return (
        tenant.notification_name
        or (contact.first_name if contact else None)
        or (contact.username if contact else None)
        or tenant.name
        or "Seller"
    )
