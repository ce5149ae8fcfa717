from marketplace.tenant.account_sync import SyncTenantAccount
from marketplace.tenant.events import TenantAccountSynced
from marketplace.tenant.tenant import Tenant
from protean import current_domain


class TestSyncTenantAccount:
    def test_details_submitted_is_mirrored(self, make_tenant):
        tenant = make_tenant(stripe_account_id="acct_9")

        tenant_id = current_domain.process(
            SyncTenantAccount(stripe_account_id="acct_9", details_submitted=True), asynchronous=False
        )

        assert tenant_id == str(tenant.id)
        assert current_domain.repository_for(Tenant).get(tenant.id).stripe_details_submitted is True

    def test_unknown_account(self):
        result = current_domain.process(
            SyncTenantAccount(stripe_account_id="acct_missing", details_submitted=True), asynchronous=False
        )
        assert result is None

    def test_unchanged_state_raises_no_event(self, make_tenant):
        tenant = make_tenant()
        assert tenant.sync_account(False) is False
        assert not [e for e in tenant._events if isinstance(e, TenantAccountSynced)]

    def test_change_raises_event(self, make_tenant):
        tenant = make_tenant()
        assert tenant.sync_account(True) is True
        [event] = [e for e in tenant._events if isinstance(e, TenantAccountSynced)]
        assert event.details_submitted is True
