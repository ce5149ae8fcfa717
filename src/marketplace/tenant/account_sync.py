"""Connected-account sync: command and handler for ``account.updated``."""

import structlog
from protean import handle
from protean.fields import Boolean, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.tenant.tenant import Tenant

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Tenant")
class SyncTenantAccount:
    """Mirror a connected account's onboarding state onto its tenant."""

    stripe_account_id: String(required=True, max_length=255)
    details_submitted: Boolean(default=False)


@marketplace.command_handler(part_of=Tenant)
class TenantAccountHandler:
    @handle(SyncTenantAccount)
    def sync_tenant_account(self, command):
        repo = current_domain.repository_for(Tenant)
        tenant = repo.find_by_stripe_account(command.stripe_account_id)
        if tenant is None:
            logger.info("No tenant for connected account", stripe_account_id=command.stripe_account_id)
            return None

        if tenant.sync_account(command.details_submitted):
            repo.add(tenant)
        return str(tenant.id)
