"""Typed failures raised across the webhook pipeline.

Checkout validation failures subclass Protean's ValidationError so they carry
the usual field-keyed messages dict. Signature and store-conflict failures are
plain exceptions: they never describe invalid domain data.
"""

from protean.exceptions import ValidationError


class InvalidSignature(Exception):
    """The webhook payload could not be authenticated."""


class MissingWebhookSecret(InvalidSignature):
    """No signing secret is configured, so nothing can be authenticated."""


class MalformedEvent(Exception):
    """An authenticated payload is not a usable event: it has no id or no type."""


class ConflictError(Exception):
    """A write was rejected because a unique key already exists."""

    def __init__(self, field_name: str, value: str):
        super().__init__(f"Duplicate value for {field_name}: {value}")
        self.field_name = field_name
        self.value = value


class CheckoutValidationError(ValidationError):
    """Base class for per-event validation failures in checkout processing."""

    field_name = "checkout"

    def __init__(self, message: str):
        super().__init__({self.field_name: [message]})
        self.message = message

    def __str__(self) -> str:
        return self.message


class MissingBuyer(CheckoutValidationError):
    field_name = "buyer"


class MissingSellerAccount(CheckoutValidationError):
    field_name = "account"


class MissingLineItems(CheckoutValidationError):
    field_name = "line_items"


class UnresolvableProductId(CheckoutValidationError):
    field_name = "product"


class UnresolvedTenant(CheckoutValidationError):
    field_name = "tenant"


class MixedTenantCart(CheckoutValidationError):
    field_name = "items"
