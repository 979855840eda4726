"""
Role definition validation.

Checks run in a fixed order and the first failing check wins, so the same
invalid payload always produces the same error.
"""

from apps.core.exceptions import (
    NameRequired, SystemRoleForbidden, MissingPrerequisiteAuthorities,
    AuthorityNotTenantScoped, ReservedName, GlobalRoleForbidden,
    RoleNotFound, TenantMismatch, RoleNameExists,
)
from apps.core.validators import normalize_name
from apps.rbac.authorities import (
    TENANT_AUTHORITIES, to_authorities, required_closure_unsatisfied,
    missing_prerequisites,
)
from apps.rbac.models import Role


class RoleValidator:
    """Naming, scope and reserved-name rules for role create and update."""

    @staticmethod
    def validate(name, authorities, tenant_id, is_system=False):
        """
        Run the six definition checks against a proposed role.

        Args:
            name: Proposed name, already normalized
            authorities: Proposed authority set
            tenant_id: Tenant the role would belong to (None for global)
            is_system: Whether the role is flagged as a system role

        Raises:
            NameRequired, SystemRoleForbidden, MissingPrerequisiteAuthorities,
            AuthorityNotTenantScoped, ReservedName, GlobalRoleForbidden
        """
        authorities = to_authorities(authorities)

        if not name:
            raise NameRequired()

        if is_system:
            raise SystemRoleForbidden()

        unsatisfied = required_closure_unsatisfied(authorities)
        if unsatisfied:
            raise MissingPrerequisiteAuthorities(
                sources=[a.value for a in unsatisfied],
                required=[a.value for a in missing_prerequisites(authorities)],
            )

        foreign = authorities - TENANT_AUTHORITIES
        if foreign:
            raise AuthorityNotTenantScoped([a.value for a in foreign])

        if name.casefold() in {reserved.casefold() for reserved in Role.RESERVED_NAMES}:
            raise ReservedName(f"The role name '{name}' is reserved.")

        if tenant_id is None:
            raise GlobalRoleForbidden()

    @classmethod
    def validate_for_create(cls, name, authorities, tenant_id, is_system=False):
        """
        Validate a new role. Returns the normalized name.

        Raises:
            RoleNameExists: If another role already uses the name
        """
        name = normalize_name(name)
        cls.validate(name, authorities, tenant_id, is_system)

        if Role.objects.name_taken(name):
            raise RoleNameExists(f"A role named '{name}' already exists.")

        return name

    @classmethod
    def validate_for_update(cls, role_id, acting_tenant_id, name, authorities):
        """
        Validate an update of an existing role.

        The definition checks run against the stored role's tenant and kind,
        so system and global roles cannot be edited. The name uniqueness
        lookup only happens when the name actually changes.

        Returns:
            tuple: (stored Role, normalized name)

        Raises:
            RoleNotFound, TenantMismatch, RoleNameExists and every error of
            ``validate``
        """
        role = Role.objects.filter(id=role_id).first()
        if role is None:
            raise RoleNotFound()

        name = normalize_name(name)
        cls.validate(name, authorities, role.tenant_id, role.is_system)

        if role.tenant_id != acting_tenant_id:
            raise TenantMismatch(role.tenant_id, acting_tenant_id)

        if name != role.name and Role.objects.name_taken(name, exclude_id=role.id):
            raise RoleNameExists(f"A role named '{name}' already exists.")

        return role, name
