"""
Tests for role definition validation.

Checks run in a fixed order; these tests pin both the individual rules and
which error wins when several rules fail at once.
"""
import uuid
import pytest
from unittest.mock import patch
from apps.core.exceptions import (
    NameRequired, SystemRoleForbidden, MissingPrerequisiteAuthorities,
    AuthorityNotTenantScoped, ReservedName, GlobalRoleForbidden,
    RoleNotFound, TenantMismatch, RoleNameExists,
)
from apps.rbac.authorities import Authority
from apps.rbac.models import Role
from apps.rbac.validators import RoleValidator


@pytest.mark.django_db
class TestValidateForCreate:
    """Test the six definition checks on create."""

    def test_blank_name_rejected(self, tenant):
        with pytest.raises(NameRequired):
            RoleValidator.validate_for_create('', [], tenant.id)

    def test_whitespace_name_rejected(self, tenant):
        with pytest.raises(NameRequired):
            RoleValidator.validate_for_create('  \t ', [], tenant.id)

    def test_name_is_normalized(self, tenant):
        name = RoleValidator.validate_for_create('  Support   Team ', [], tenant.id)
        assert name == 'Support Team'

    def test_system_flag_rejected(self, tenant):
        with pytest.raises(SystemRoleForbidden):
            RoleValidator.validate_for_create('Ops', [], tenant.id, is_system=True)

    def test_missing_prerequisite_lists_sources_and_required(self, tenant):
        with pytest.raises(MissingPrerequisiteAuthorities) as exc_info:
            RoleValidator.validate_for_create('R', [Authority.CREATE_USERS], tenant.id)

        assert exc_info.value.sources == ['CREATE_USERS']
        assert exc_info.value.required == ['VIEW_USERS']
        assert exc_info.value.details == {
            'sources': ['CREATE_USERS'],
            'required': ['VIEW_USERS'],
        }

    def test_missing_prerequisites_sorted(self, tenant):
        with pytest.raises(MissingPrerequisiteAuthorities) as exc_info:
            RoleValidator.validate_for_create(
                'R', [Authority.MODIFY_USER_ROLES, Authority.CREATE_ROLES], tenant.id
            )

        assert exc_info.value.sources == ['CREATE_ROLES', 'MODIFY_USER_ROLES']
        assert exc_info.value.required == ['VIEW_ROLES', 'VIEW_USERS']

    def test_global_authority_rejected(self, tenant):
        with pytest.raises(AuthorityNotTenantScoped) as exc_info:
            RoleValidator.validate_for_create('R', [Authority.CREATE_TENANTS], tenant.id)

        assert exc_info.value.details == {'authorities': ['CREATE_TENANTS']}

    @pytest.mark.parametrize('name', ['Administrator', 'administrator', 'SYSADMIN', 'SysAdmin'])
    def test_reserved_names_rejected(self, tenant, name):
        with pytest.raises(ReservedName):
            RoleValidator.validate_for_create(name, [], tenant.id)

    def test_reserved_name_rejected_without_system_flag(self, tenant):
        with pytest.raises(ReservedName):
            RoleValidator.validate_for_create('Administrator', [], tenant.id, is_system=False)

    def test_global_role_rejected(self, db):
        with pytest.raises(GlobalRoleForbidden):
            RoleValidator.validate_for_create('Auditor', [Authority.VIEW_ROLES], None)

    def test_duplicate_name_rejected(self, tenant, make_role):
        make_role(tenant, 'Support')

        with pytest.raises(RoleNameExists):
            RoleValidator.validate_for_create('Support', [], tenant.id)

    def test_name_uniqueness_is_global(self, tenant, other_tenant, make_role):
        make_role(other_tenant, 'Support')

        with pytest.raises(RoleNameExists):
            RoleValidator.validate_for_create('Support', [], tenant.id)

    def test_valid_role_passes(self, tenant):
        name = RoleValidator.validate_for_create(
            'Support', [Authority.CREATE_USERS, Authority.VIEW_USERS], tenant.id
        )
        assert name == 'Support'


@pytest.mark.django_db
class TestValidationOrder:
    """Test that the first failing check wins."""

    def test_name_checked_before_system_flag(self, tenant):
        with pytest.raises(NameRequired):
            RoleValidator.validate_for_create('', [], tenant.id, is_system=True)

    def test_system_flag_checked_before_prerequisites(self, tenant):
        with pytest.raises(SystemRoleForbidden):
            RoleValidator.validate_for_create(
                'R', [Authority.CREATE_USERS], tenant.id, is_system=True
            )

    def test_prerequisites_checked_before_scope(self, tenant):
        with pytest.raises(MissingPrerequisiteAuthorities):
            RoleValidator.validate_for_create(
                'R', [Authority.CREATE_USERS, Authority.CREATE_TENANTS], tenant.id
            )

    def test_scope_checked_before_reserved_name(self, tenant):
        with pytest.raises(AuthorityNotTenantScoped):
            RoleValidator.validate_for_create(
                'Administrator', [Authority.CREATE_TENANTS], tenant.id
            )

    def test_reserved_name_checked_before_tenant(self, db):
        with pytest.raises(ReservedName):
            RoleValidator.validate_for_create('SysAdmin', [], None)


@pytest.mark.django_db
class TestValidateForUpdate:
    """Test update-specific checks."""

    def test_unknown_role(self, tenant):
        with pytest.raises(RoleNotFound):
            RoleValidator.validate_for_update(uuid.uuid4(), tenant.id, 'R', [])

    def test_unknown_role_checked_first(self, tenant):
        with pytest.raises(RoleNotFound):
            RoleValidator.validate_for_update(uuid.uuid4(), tenant.id, '', [])

    def test_system_role_cannot_be_updated(self, tenant, superadmin_role):
        with pytest.raises(SystemRoleForbidden):
            RoleValidator.validate_for_update(superadmin_role.id, tenant.id, 'Boss', [])

    def test_global_role_cannot_be_updated(self, tenant, make_role):
        role = make_role(None, 'Auditors')

        with pytest.raises(GlobalRoleForbidden):
            RoleValidator.validate_for_update(role.id, tenant.id, 'Auditors', [])

    def test_role_of_other_tenant(self, tenant, other_tenant, make_role):
        role = make_role(other_tenant, 'Support')

        with pytest.raises(TenantMismatch) as exc_info:
            RoleValidator.validate_for_update(role.id, tenant.id, 'Support', [])

        assert exc_info.value.details == {
            'role_tenant_id': str(other_tenant.id),
            'acting_tenant_id': str(tenant.id),
        }

    def test_rename_to_taken_name(self, tenant, make_role):
        make_role(tenant, 'Support')
        role = make_role(tenant, 'Sales')

        with pytest.raises(RoleNameExists):
            RoleValidator.validate_for_update(role.id, tenant.id, 'Support', [])

    def test_authority_only_update_skips_name_lookup(self, tenant, make_role):
        role = make_role(tenant, 'Support')

        with patch.object(Role.objects, 'name_taken') as name_taken:
            stored, name = RoleValidator.validate_for_update(
                role.id, tenant.id, ' Support ', [Authority.VIEW_USERS]
            )

        name_taken.assert_not_called()
        assert stored == role
        assert name == 'Support'

    def test_rename_to_free_name(self, tenant, make_role):
        role = make_role(tenant, 'Support')

        stored, name = RoleValidator.validate_for_update(role.id, tenant.id, 'Helpdesk', [])

        assert stored == role
        assert name == 'Helpdesk'
