"""Template registry: maps receipt names to template classes."""

from marketplace.effects.templates.order_confirmation import OrderConfirmationTemplate
from marketplace.effects.templates.sale_notification import SaleNotificationTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    OrderConfirmationTemplate.name: OrderConfirmationTemplate,
    SaleNotificationTemplate.name: SaleNotificationTemplate,
}


def get_template(name: str):
    """Look up a template class by name."""
    template_cls = TEMPLATE_REGISTRY.get(name)
    if template_cls is None:
        raise ValueError(f"No template registered for: {name}")
    return template_cls
