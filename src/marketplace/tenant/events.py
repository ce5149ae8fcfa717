"""Domain events for the Tenant aggregate."""

from protean.fields import Boolean, DateTime, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Tenant")
class TenantAccountSynced:
    """The tenant's connected-account onboarding state changed."""

    __version__ = 1

    tenant_id: Identifier(required=True)
    stripe_account_id: String(required=True)
    details_submitted: Boolean(required=True)
    synced_at: DateTime(required=True)
