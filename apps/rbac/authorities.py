"""
Authorities and the static prerequisite table between them.

An authority is an atomic permission tag attached to roles. Tenant
authorities may only appear on tenant-scoped roles, global authorities only
on global roles. Some authorities are meaningless without others (creating
users requires seeing them), which ``REQUIRED_AUTHORITIES`` declares.
"""
from django.db import models


class Authority(models.TextChoices):
    # Tenant authorities
    MODIFY_TENANT = 'MODIFY_TENANT', 'Modify tenant'
    VIEW_USERS = 'VIEW_USERS', 'View users'
    CREATE_USERS = 'CREATE_USERS', 'Invite users'
    DELETE_USERS = 'DELETE_USERS', 'Remove users'
    VIEW_ROLES = 'VIEW_ROLES', 'View roles'
    CREATE_ROLES = 'CREATE_ROLES', 'Create roles'
    MODIFY_ROLES = 'MODIFY_ROLES', 'Modify roles'
    DELETE_ROLES = 'DELETE_ROLES', 'Delete roles'
    MODIFY_USER_ROLES = 'MODIFY_USER_ROLES', 'Change user roles'

    # Global authorities
    CREATE_TENANTS = 'CREATE_TENANTS', 'Create tenants'


TENANT_AUTHORITIES = frozenset({
    Authority.MODIFY_TENANT,
    Authority.VIEW_USERS,
    Authority.CREATE_USERS,
    Authority.DELETE_USERS,
    Authority.VIEW_ROLES,
    Authority.CREATE_ROLES,
    Authority.MODIFY_ROLES,
    Authority.DELETE_ROLES,
    Authority.MODIFY_USER_ROLES,
})

GLOBAL_AUTHORITIES = frozenset({
    Authority.CREATE_TENANTS,
})

REQUIRED_AUTHORITIES = {
    Authority.CREATE_USERS: frozenset({Authority.VIEW_USERS}),
    Authority.DELETE_USERS: frozenset({Authority.VIEW_USERS}),
    Authority.CREATE_ROLES: frozenset({Authority.VIEW_ROLES}),
    Authority.MODIFY_ROLES: frozenset({Authority.VIEW_ROLES}),
    Authority.DELETE_ROLES: frozenset({Authority.VIEW_ROLES}),
    Authority.MODIFY_USER_ROLES: frozenset({Authority.VIEW_ROLES, Authority.VIEW_USERS}),
}


def to_authorities(values):
    """
    Convert raw strings to ``Authority`` members.

    Raises:
        ValueError: If a value is not a known authority
    """
    return {Authority(value) for value in values}


def prerequisites_of(authority, requirements=None):
    """
    Transitive prerequisites of ``authority``.

    Expands the requirement table until nothing new is added, bounded by the
    number of authorities so a cyclic table cannot loop forever.
    """
    if requirements is None:
        requirements = REQUIRED_AUTHORITIES

    closure = set(requirements.get(authority, ()))
    for _ in range(len(Authority)):
        expanded = set(closure)
        for required in closure:
            expanded.update(requirements.get(required, ()))
        if expanded == closure:
            break
        closure = expanded

    closure.discard(authority)
    return closure


def required_closure_unsatisfied(candidate, requirements=None):
    """
    Authorities in ``candidate`` whose prerequisites are not all in ``candidate``.

    An empty result means the set is self-consistent.
    """
    candidate = set(candidate)
    return {
        authority for authority in candidate
        if not prerequisites_of(authority, requirements) <= candidate
    }


def missing_prerequisites(candidate, requirements=None):
    """Prerequisites of the offending authorities that ``candidate`` lacks."""
    candidate = set(candidate)
    missing = set()
    for authority in required_closure_unsatisfied(candidate, requirements):
        missing |= prerequisites_of(authority, requirements) - candidate
    return missing


def sort_authorities(authorities):
    """Sort lexicographically by authority name."""
    return sorted(Authority(a).value for a in authorities)
