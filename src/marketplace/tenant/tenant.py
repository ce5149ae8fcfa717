"""Tenant aggregate root: a seller shop connected to a Stripe account."""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Identifier, String

from marketplace.domain import marketplace
from marketplace.tenant.events import TenantAccountSynced


@marketplace.aggregate
class Tenant:
    name: String(max_length=255, required=True)
    slug: String(max_length=100, required=True, unique=True)
    stripe_account_id: String(max_length=255, unique=True)
    stripe_details_submitted: Boolean(default=False)
    notification_email: String(max_length=255)
    notification_name: String(max_length=255)
    primary_contact_id: Identifier()
    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def register(
        cls,
        name,
        slug,
        stripe_account_id=None,
        notification_email=None,
        notification_name=None,
        primary_contact_id=None,
    ):
        now = datetime.now(UTC)
        return cls(
            name=name,
            slug=slug,
            stripe_account_id=stripe_account_id,
            stripe_details_submitted=False,
            notification_email=notification_email,
            notification_name=notification_name,
            primary_contact_id=primary_contact_id,
            created_at=now,
            updated_at=now,
        )

    def sync_account(self, details_submitted: bool) -> bool:
        """Mirror the connected account's onboarding state. Returns True if it changed."""
        details_submitted = bool(details_submitted)
        if self.stripe_details_submitted == details_submitted:
            return False

        now = datetime.now(UTC)
        self.stripe_details_submitted = details_submitted
        self.updated_at = now

        self.raise_(
            TenantAccountSynced(
                tenant_id=str(self.id),
                stripe_account_id=self.stripe_account_id,
                details_submitted=details_submitted,
                synced_at=now,
            )
        )
        return True
