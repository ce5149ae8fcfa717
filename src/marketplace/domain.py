"""Marketplace bounded context: payment-event processing and inventory reconciliation.

Turns Stripe Connect webhook deliveries into durable orders exactly once,
adjusts per-product stock with a conditional store update, and keeps order
refund totals in step with the provider's refund records.
"""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
