"""
Tests for RBAC management commands.
"""
from io import StringIO

import pytest
from django.core.management import call_command

from apps.rbac.authorities import Authority
from apps.rbac.models import User, Role, RoleKind, AuditLog


@pytest.mark.django_db
class TestSeedSystemAdmin:
    """Test the seed_system_admin command."""

    def test_creates_role(self):
        out = StringIO()
        call_command('seed_system_admin', stdout=out)

        role = Role.objects.get(kind=RoleKind.SYSTEM_ADMIN)
        assert role.name == Role.SYSADMIN_NAME
        assert role.tenant is None
        assert role.authority_set == {Authority.CREATE_TENANTS}
        assert 'Created role' in out.getvalue()

    def test_grants_role_to_principal(self):
        call_command('seed_system_admin', principal='root@warden.test', stdout=StringIO())

        user = User.objects.by_principal('root@warden.test')
        assert [r.kind for r in user.roles.all()] == [RoleKind.SYSTEM_ADMIN]
        assert AuditLog.objects.by_action('system_admin_granted').filter(target_id=user.id).exists()

    def test_idempotent(self):
        call_command('seed_system_admin', principal='root@warden.test', stdout=StringIO())
        out = StringIO()
        call_command('seed_system_admin', principal='root@warden.test', stdout=out)

        assert Role.objects.filter(kind=RoleKind.SYSTEM_ADMIN).count() == 1
        assert 'already holds' in out.getvalue()

    def test_restores_missing_authorities(self, system_admin_role):
        Role.objects.filter(id=system_admin_role.id).update(authorities=[])

        call_command('seed_system_admin', stdout=StringIO())

        system_admin_role.refresh_from_db()
        assert system_admin_role.authorities == ['CREATE_TENANTS']
