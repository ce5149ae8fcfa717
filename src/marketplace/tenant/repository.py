"""Repository for the Tenant aggregate."""

from protean.exceptions import ObjectNotFoundError

from marketplace.domain import marketplace
from marketplace.tenant.tenant import Tenant


@marketplace.repository(part_of=Tenant)
class TenantRepository:
    def find_by_id(self, tenant_id: str) -> Tenant | None:
        try:
            return self.get(tenant_id)
        except ObjectNotFoundError:
            return None

    def find_by_slug(self, slug: str) -> Tenant | None:
        return self._dao.query.filter(slug=slug).all().first

    def find_by_stripe_account(self, stripe_account_id: str) -> Tenant | None:
        return self._dao.query.filter(stripe_account_id=stripe_account_id).all().first
