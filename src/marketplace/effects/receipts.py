"""Builders for the side-effect tasks a webhook produces."""

from marketplace.effects.dispatcher import AnalyticsTask, EmailTask, unique_recipients
from marketplace.effects.templates.order_confirmation import OrderConfirmationTemplate
from marketplace.effects.templates.sale_notification import SaleNotificationTemplate
from marketplace.webhook.line_items import format_cents, parse_checkout_metadata


def _card_details(charge: dict | None) -> dict:
    card = ((charge or {}).get("payment_method_details") or {}).get("card") or {}
    return {
        "card_brand": card.get("brand"),
        "card_last4": card.get("last4"),
        "statement_descriptor": (charge or {}).get("calculated_statement_descriptor")
        or (charge or {}).get("statement_descriptor"),
    }


def receipt_context(order, seller_name: str, buyer_name: str | None, charge: dict | None, support_url: str) -> dict:
    """Template context shared by the buyer and seller receipts."""
    shipping = order.shipping
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "order_name": order.name,
        "buyer_name": buyer_name,
        "buyer_email": order.buyer_email,
        "seller_name": seller_name,
        "total": format_cents(order.total_cents, order.currency),
        "items": [
            {
                "name": item.name_snapshot,
                "quantity": item.quantity,
                "amount": format_cents(item.amount_total, order.currency),
            }
            for item in order.items
        ],
        "shipping": (
            {
                "name": shipping.name,
                "line1": shipping.line1,
                "line2": shipping.line2,
                "city": shipping.city,
                "state": shipping.state,
                "postal_code": shipping.postal_code,
                "country": shipping.country,
            }
            if shipping
            else None
        ),
        "support_url": support_url,
        **_card_details(charge),
    }


def purchase_tasks(order, context: dict, seller_recipients: list[str]) -> list[EmailTask | AnalyticsTask]:
    """Buyer receipt, seller sale notification and the purchase analytics event."""
    tasks: list[EmailTask | AnalyticsTask] = []
    if order.buyer_email:
        tasks.append(EmailTask(OrderConfirmationTemplate.name, (order.buyer_email,), context))
    recipients = unique_recipients(seller_recipients)
    if recipients:
        tasks.append(EmailTask(SaleNotificationTemplate.name, recipients, context))

    tenant_id = str(order.tenant_id)
    tasks.append(
        AnalyticsTask(
            event="purchaseCompleted",
            distinct_id=str(order.buyer_id),
            properties={
                "orderId": str(order.id),
                "stripeSessionId": order.stripe_checkout_session_id,
                "amountTotal": order.total_cents,
                "currency": order.currency,
                "productIds": [str(item.product_id) for item in order.items],
                "tenantId": tenant_id,
            },
            groups={"tenant": tenant_id},
        )
    )
    return tasks


def checkout_expired_task(event: dict) -> AnalyticsTask:
    session = (event.get("data") or {}).get("object") or {}
    metadata = parse_checkout_metadata(session.get("metadata"))
    return AnalyticsTask(
        event="checkoutExpired",
        distinct_id=metadata.buyer_id or session.get("customer_email") or "unknown",
        properties={
            "stripeSessionId": session.get("id"),
            "amountTotal": session.get("amount_total"),
            "currency": (session.get("currency") or "").upper() or None,
            "productIds": list(metadata.product_ids),
            "tenantId": metadata.tenant_id,
        },
        groups={"tenant": metadata.tenant_id} if metadata.tenant_id else None,
    )


def checkout_failed_task(event: dict) -> AnalyticsTask:
    payment_intent = (event.get("data") or {}).get("object") or {}
    metadata = parse_checkout_metadata(payment_intent.get("metadata"))
    error = payment_intent.get("last_payment_error") or {}
    return AnalyticsTask(
        event="checkoutFailed",
        distinct_id=metadata.buyer_id or payment_intent.get("receipt_email") or "unknown",
        properties={
            "stripePaymentIntentId": payment_intent.get("id"),
            "amount": payment_intent.get("amount"),
            "currency": (payment_intent.get("currency") or "").upper() or None,
            "failureCode": error.get("code"),
            "failureMessage": error.get("message"),
            "tenantId": metadata.tenant_id,
        },
        groups={"tenant": metadata.tenant_id} if metadata.tenant_id else None,
    )
