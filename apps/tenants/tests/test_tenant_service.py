"""
Tests for TenantService.
"""
import uuid
import pytest

from apps.core.exceptions import NameRequired, TenantNameExists, TenantMissing
from apps.rbac.authorities import TENANT_AUTHORITIES
from apps.rbac.models import Role, RoleKind, AuditLog
from apps.rbac.services import AuthorityResolver
from apps.tenants.models import Tenant
from apps.tenants.services import TenantService


@pytest.mark.django_db
class TestTenantCreation:
    """Test tenant creation with super-admin assignment."""

    def test_create_tenant_grants_superadmin(self, user):
        tenant = TenantService.create_tenant(user, '  Initech  Corp ')

        assert tenant.name == 'Initech Corp'
        roles = AuthorityResolver.roles_in_tenant(user, tenant.id)
        assert len(roles) == 1
        role = roles.pop()
        assert role.kind == RoleKind.TENANT_SUPERADMIN
        assert role.name == Role.SUPERADMIN_NAME
        assert role.authority_set == set(TENANT_AUTHORITIES)

    def test_creator_gets_all_tenant_authorities(self, user):
        tenant = TenantService.create_tenant(user, 'Initech')

        assert AuthorityResolver.effective_authorities(user, tenant.id) == set(TENANT_AUTHORITIES)

    def test_create_tenant_audited(self, user):
        tenant = TenantService.create_tenant(user, 'Initech')

        entry = AuditLog.objects.by_action('tenant_created').get(target_id=tenant.id)
        assert entry.user == user
        assert entry.diff['name'] == 'Initech'

    def test_blank_name_rejected(self, user):
        with pytest.raises(NameRequired):
            TenantService.create_tenant(user, '   ')

    def test_duplicate_name_rejected(self, user, tenant):
        with pytest.raises(TenantNameExists):
            TenantService.create_tenant(user, tenant.name)

        assert Tenant.objects.count() == 1

    def test_seed_superadmin_role_is_idempotent(self, tenant, superadmin_role):
        assert TenantService._seed_superadmin_role(tenant) == superadmin_role
        assert Role.objects.filter(tenant=tenant, kind=RoleKind.TENANT_SUPERADMIN).count() == 1


@pytest.mark.django_db
class TestTenantRename:
    """Test tenant rename."""

    def test_rename(self, superadmin, tenant):
        renamed = TenantService.rename_tenant(tenant.id, 'Acme Labs', user=superadmin)

        tenant.refresh_from_db()
        assert renamed.name == 'Acme Labs'
        assert tenant.name == 'Acme Labs'
        entry = AuditLog.objects.by_action('tenant_renamed').get(target_id=tenant.id)
        assert entry.diff == {'before': 'Acme', 'after': 'Acme Labs'}

    def test_rename_to_same_name(self, tenant):
        assert TenantService.rename_tenant(tenant.id, 'Acme').name == 'Acme'

    def test_rename_blank(self, tenant):
        with pytest.raises(NameRequired):
            TenantService.rename_tenant(tenant.id, '')

    def test_rename_to_taken_name(self, tenant, other_tenant):
        with pytest.raises(TenantNameExists):
            TenantService.rename_tenant(tenant.id, other_tenant.name)

    def test_rename_missing_tenant(self, db):
        with pytest.raises(TenantMissing):
            TenantService.rename_tenant(uuid.uuid4(), 'Ghost')

    def test_name_checked_before_existence(self, tenant):
        with pytest.raises(TenantNameExists):
            TenantService.rename_tenant(uuid.uuid4(), tenant.name)

    def test_rename_without_tenant(self, db):
        with pytest.raises(TenantMissing):
            TenantService.rename_tenant(None, 'Ghost')
