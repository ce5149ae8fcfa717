"""Order materializer: turn a completed checkout session into exactly one order.

    precheck ──found──> duplicate (finish inventory if it never ran)
        │
        └─none──> resolve ──> create ──ok──────> adjust inventory, send receipts
                                 └──conflict──> another delivery won; reuse its order

Session id and event id are both unique keys on Order, so a concurrent
delivery that slips past the precheck is stopped by the store. Inventory is
claimed in the store before stock moves: only the delivery that flips
``inventory_adjusted_at`` from unset runs the decrement batch.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.utils.globals import current_domain
from protean.utils.query import Q

from marketplace.catalogue.inventory import BatchOutcome, InventoryLedger
from marketplace.config import Settings
from marketplace.effects.dispatcher import SideEffectDispatcher
from marketplace.effects.receipts import purchase_tasks, receipt_context
from marketplace.errors import (
    CheckoutValidationError,
    ConflictError,
    MissingBuyer,
    MissingLineItems,
    MissingSellerAccount,
)
from marketplace.gateway import get_provider
from marketplace.gateway.port import PaymentProvider
from marketplace.order.order import Order, OrderLineItem, ShippingAddress
from marketplace.webhook.line_items import (
    build_line_item_drafts,
    earliest_cutoff,
    generate_order_number,
    order_display_name,
    order_total_cents,
    parse_checkout_metadata,
    require_product_id,
    to_quantity_map,
)
from marketplace.webhook.resolvers import (
    guard_single_tenant,
    load_products,
    resolve_payment_details,
    resolve_tenant,
    resolve_user,
    seller_display_name,
    seller_recipients,
)
from marketplace.webhook.shipping import ShippingSources, resolve_shipping

logger = structlog.get_logger(__name__)


class MaterializationOutcome(Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class MaterializedOrder:
    order_id: str
    outcome: MaterializationOutcome
    inventory: BatchOutcome | None = None


class OrderMaterializer:
    def __init__(
        self,
        provider: PaymentProvider | None = None,
        inventory: InventoryLedger | None = None,
        dispatcher: SideEffectDispatcher | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.provider = provider or get_provider()
        self.inventory = inventory or InventoryLedger(insufficient_retries=self.settings.insufficient_stock_retries)
        self.dispatcher = dispatcher or SideEffectDispatcher(settings=self.settings)

    def materialize(self, event: dict) -> MaterializedOrder:
        session = event["data"]["object"]
        session_id = session["id"]
        event_id = event.get("id")
        orders = current_domain.repository_for(Order)

        existing = orders.find_by_session_or_event(session_id, event_id)
        if existing is not None:
            return self._settle_duplicate(existing, event_id)

        order, receipt, recipients = self._build_order(event, session)

        try:
            order = orders.create_unique(order)
        except ConflictError as exc:
            winner = orders.find_by_session_or_event(session_id, event_id)
            logger.info(
                "Order already created by a concurrent delivery",
                session_id=session_id,
                conflict_field=exc.field_name,
                order_id=str(winner.id) if winner else None,
            )
            if winner is None:
                raise
            return MaterializedOrder(order_id=str(winner.id), outcome=MaterializationOutcome.CONFLICT)

        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order.order_number,
            session_id=session_id,
            total_cents=order.total_cents,
        )

        inventory = self._adjust_inventory(order, event_id)

        for task in purchase_tasks(order, receipt_context(order, **receipt), recipients):
            self.dispatcher.dispatch(task)

        return MaterializedOrder(order_id=str(order.id), outcome=MaterializationOutcome.CREATED, inventory=inventory)

    # -------------------------------------------------------------------
    # Duplicate path
    # -------------------------------------------------------------------
    def _settle_duplicate(self, order: Order, event_id: str | None) -> MaterializedOrder:
        if not order.needs_inventory_adjustment:
            logger.info("Order already exists", order_id=str(order.id))
            return MaterializedOrder(order_id=str(order.id), outcome=MaterializationOutcome.DUPLICATE)

        logger.info("Finishing inventory for existing order", order_id=str(order.id))
        order.record_event_id(event_id)
        inventory = self._adjust_inventory(order, event_id)
        return MaterializedOrder(order_id=str(order.id), outcome=MaterializationOutcome.DUPLICATE, inventory=inventory)

    def _adjust_inventory(self, order: Order, event_id: str | None) -> BatchOutcome | None:
        if not self._claim_inventory_adjustment(order):
            logger.info("Inventory already claimed by another delivery", order_id=str(order.id))
            return None

        outcome = self.inventory.decrement_batch(to_quantity_map(order.items))
        order.mark_inventory_adjusted(event_id)
        current_domain.repository_for(Order).add(order)

        if not outcome.all_ok:
            logger.warning(
                "Inventory adjusted with failures",
                order_id=str(order.id),
                failures={r.product_id: r.reason.value for r in outcome.failures},
            )
        return outcome

    def _claim_inventory_adjustment(self, order: Order) -> bool:
        """Conditionally set the adjustment timestamp; False when it was already set."""
        try:
            matched = current_domain.repository_for(Order)._dao._update_all(
                Q(id=str(order.id), inventory_adjusted_at=None),
                inventory_adjusted_at=datetime.now(UTC),
            )
        except NotImplementedError:
            return True
        return matched is None or bool(matched)

    # -------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------
    def _build_order(self, event: dict, session: dict) -> tuple[Order, dict, list[str]]:
        now = datetime.now(UTC)

        metadata = parse_checkout_metadata(session.get("metadata"))
        if not metadata.buyer_id:
            raise MissingBuyer("Checkout session has no buyer reference")

        account = event.get("account")
        if not account:
            raise MissingSellerAccount("Checkout event has no connected account")

        expanded = self.provider.retrieve_checkout_session(session["id"], stripe_account=account)
        lines = (expanded.get("line_items") or {}).get("data") or []
        if not lines:
            raise MissingLineItems(f"Checkout session {session['id']} has no line items")

        currency = (expanded.get("currency") or session.get("currency") or "").upper()
        if not currency:
            raise CheckoutValidationError(f"Checkout session {session['id']} has no currency")

        if expanded.get("metadata"):
            metadata = parse_checkout_metadata({**(session.get("metadata") or {}), **expanded["metadata"]})

        tenant = resolve_tenant(metadata, account)
        products = load_products(require_product_id(line) for line in lines)
        guard_single_tenant(products.values(), tenant)

        payment = resolve_payment_details(self.provider, {**session, **expanded}, account)
        drafts = build_line_item_drafts(
            lines,
            {product_id: product.refund_policy for product_id, product in products.items()},
            now,
        )
        shipping = resolve_shipping(ShippingSources(expanded, payment.payment_intent, payment.charge))

        buyer = resolve_user(metadata.buyer_id)
        buyer_email = (buyer.email if buyer else None) or (expanded.get("customer_details") or {}).get("email")
        contact = resolve_user(str(tenant.primary_contact_id)) if tenant.primary_contact_id else None

        order = Order.place(
            order_number=generate_order_number(),
            name=order_display_name([draft.name for draft in drafts]),
            buyer_id=metadata.buyer_id,
            tenant_id=str(tenant.id),
            currency=currency,
            total_cents=order_total_cents(lines, payment.payment_intent),
            stripe_checkout_session_id=session["id"],
            stripe_event_id=event.get("id"),
            stripe_account_id=account,
            stripe_payment_intent_id=payment.payment_intent_id,
            stripe_charge_id=payment.charge_id,
            buyer_email=buyer_email,
            shipping=ShippingAddress(**shipping.as_dict()) if shipping else None,
            returns_accepted_through=earliest_cutoff(drafts),
            items=[
                OrderLineItem(
                    product_id=draft.product_id,
                    name_snapshot=draft.name,
                    unit_amount=draft.unit_amount,
                    quantity=draft.quantity,
                    amount_subtotal=draft.amount_subtotal,
                    amount_tax=draft.amount_tax,
                    amount_total=draft.amount_total,
                    refund_policy=draft.refund_policy,
                    returns_accepted_through=draft.returns_accepted_through,
                )
                for draft in drafts
            ],
        )

        receipt = {
            "seller_name": seller_display_name(tenant, contact),
            "buyer_name": buyer.greeting_name if buyer else None,
            "charge": payment.charge,
            "support_url": self.settings.support_url,
        }
        return order, receipt, seller_recipients(tenant, contact)
