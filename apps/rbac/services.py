"""
RBAC services.

Implements:
- AuthorityResolver: effective authorities and tenant roles of a user
- RoleAssignmentGuard: privilege escalation and tenant isolation rules for role changes
- RoleService: role create, update and delete
- UserService: role-set replacement, tenant removal, self-service
- InviteService: invite token issuance, resolution and acceptance
"""
import logging
from typing import Iterable, List, Optional, Set
from uuid import UUID

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.exceptions import (
    ClientError, SuperadminGrantRequiresSuperadmin,
    CannotModifyAnothersSuperadminRole, SystemAdminRoleReserved,
    SystemAdminRoleImmutable, GlobalRoleNotAssignable, TenantScopeMismatch,
    TenantMismatch, SystemRoleForbidden, TenantMissing, InvalidToken,
    RoleNotPermitsRemoval, NameRequired,
)
from apps.core.logging import SecurityLogger
from apps.core.validators import normalize_name
from apps.rbac.authorities import Authority, TENANT_AUTHORITIES, to_authorities, sort_authorities
from apps.rbac.models import (
    User, Role, RoleKind, UserRole, InviteToken, AuditLog, generate_invite_token,
)
from apps.rbac.validators import RoleValidator
from apps.tenants.models import Tenant

logger = logging.getLogger(__name__)


class AuthorityResolver:
    """
    Read-only view of what a user may do inside one tenant.

    ``effective_authorities`` includes global roles, ``roles_in_tenant`` does
    not; every role counted by the latter contributes to the former.
    """

    @staticmethod
    def roles_in_tenant(user: Optional[User], tenant_id: Optional[UUID]) -> Set[Role]:
        """Roles of ``user`` whose tenant is exactly ``tenant_id``."""
        if user is None or user.pk is None or tenant_id is None:
            return set()
        return set(Role.objects.filter(user_roles__user=user, tenant_id=tenant_id))

    @staticmethod
    def effective_authorities(user: Optional[User], tenant_id: Optional[UUID]) -> Set[Authority]:
        """
        Union of the authorities of the user's roles in ``tenant_id`` and of
        all their global roles.
        """
        if user is None or user.pk is None:
            return set()

        scope = Q(tenant__isnull=True)
        if tenant_id is not None:
            scope |= Q(tenant_id=tenant_id)

        authorities = set()
        for role in Role.objects.filter(scope, user_roles__user=user):
            authorities |= role.authority_set
        return authorities


class RoleAssignmentGuard:
    """
    Gate for every change to a user's role set.

    ``collect_violations`` evaluates all rules and returns the violations in
    rule order; ``validate_change`` raises the first one.
    """

    @classmethod
    def collect_violations(cls, acting_tenant_id, acting_user, old_roles: Iterable[Role],
                           new_roles: Iterable[Role]) -> List[ClientError]:
        old_roles = set(old_roles)
        new_roles = set(new_roles)
        violations = []

        touches_superadmin = any(r.is_superadmin for r in old_roles | new_roles)
        acting_is_superadmin = touches_superadmin and any(
            role.is_superadmin
            for role in AuthorityResolver.roles_in_tenant(acting_user, acting_tenant_id)
        )

        if any(r.is_superadmin for r in new_roles) and not acting_is_superadmin:
            violations.append(SuperadminGrantRequiresSuperadmin())

        if any(r.is_superadmin for r in old_roles) and not acting_is_superadmin:
            violations.append(CannotModifyAnothersSuperadminRole())

        if any(r.is_system_admin for r in new_roles):
            violations.append(SystemAdminRoleReserved())

        if any(r.is_system_admin for r in old_roles):
            violations.append(SystemAdminRoleImmutable())

        global_roles = [r for r in new_roles if r.is_global]
        if global_roles:
            violations.append(GlobalRoleNotAssignable(
                details={'role_ids': sorted(str(r.id) for r in global_roles)}
            ))

        foreign = [r for r in old_roles | new_roles if r.tenant_id != acting_tenant_id]
        if foreign:
            violations.append(TenantScopeMismatch(
                details={
                    'role_ids': sorted(str(r.id) for r in foreign),
                    'acting_tenant_id': str(acting_tenant_id) if acting_tenant_id else None,
                }
            ))

        return violations

    @classmethod
    def validate_change(cls, acting_tenant_id, acting_user, old_roles: Iterable[Role],
                        new_roles: Iterable[Role]) -> None:
        """
        Raise the first rule violation of a proposed role change.

        Raises:
            RoleAssignmentError subclass, in rule order
        """
        violations = cls.collect_violations(acting_tenant_id, acting_user, old_roles, new_roles)
        if not violations:
            return

        first = violations[0]
        SecurityLogger.log_role_change_rejected(
            first.code,
            user_id=getattr(acting_user, 'id', None),
            tenant_id=acting_tenant_id,
            violations=[v.code for v in violations],
        )
        raise first

    @staticmethod
    def apply_change(user: User, old_roles: Iterable[Role], new_roles: Iterable[Role]) -> None:
        """Remove exactly ``old_roles`` from ``user`` and add exactly ``new_roles``."""
        old_roles = set(old_roles)
        new_roles = set(new_roles)
        UserRole.objects.revoke(user, old_roles - new_roles)
        UserRole.objects.grant(user, new_roles - old_roles)


class RoleService:
    """Role definition lifecycle inside the acting tenant."""

    @staticmethod
    def list_roles(tenant_id):
        return Role.objects.for_tenant(tenant_id).order_by('name')

    @classmethod
    @transaction.atomic
    def create_role(cls, acting_tenant_id, name, authorities, is_system=False,
                    user=None, request=None) -> Role:
        """
        Create an ordinary role in the acting tenant.

        Raises:
            TenantMissing: If the acting tenant does not exist
            ClientError: Any role validation failure
        """
        if acting_tenant_id is None or not Tenant.objects.filter(id=acting_tenant_id).exists():
            raise TenantMissing()

        name = RoleValidator.validate_for_create(name, authorities, acting_tenant_id, is_system)

        role = Role.objects.create(
            tenant_id=acting_tenant_id,
            name=name,
            kind=RoleKind.ORDINARY,
            authorities=sort_authorities(to_authorities(authorities)),
        )

        AuditLog.log_action(
            action='role_created',
            user=user,
            tenant_id=acting_tenant_id,
            target_type='Role',
            target_id=role.id,
            diff={'name': role.name, 'authorities': role.authorities},
            request=request,
        )
        logger.info(
            f"Role created: {role.name}",
            extra={'role_id': str(role.id), 'tenant_id': str(acting_tenant_id)}
        )
        return role

    @classmethod
    @transaction.atomic
    def update_role(cls, role_id, acting_tenant_id, name, authorities,
                    user=None, request=None) -> Role:
        """
        Rename a role and replace its authorities.

        Raises:
            RoleNotFound, TenantMismatch, RoleNameExists and role validation errors
        """
        role, name = RoleValidator.validate_for_update(
            role_id, acting_tenant_id, name, authorities
        )

        before = {'name': role.name, 'authorities': list(role.authorities)}
        role.name = name
        role.authorities = sort_authorities(to_authorities(authorities) & TENANT_AUTHORITIES)
        role.save(update_fields=['name', 'authorities', 'updated_at'])

        AuditLog.log_action(
            action='role_updated',
            user=user,
            tenant_id=acting_tenant_id,
            target_type='Role',
            target_id=role.id,
            diff={
                'before': before,
                'after': {'name': role.name, 'authorities': role.authorities},
            },
            request=request,
        )
        return role

    @classmethod
    @transaction.atomic
    def delete_role(cls, role_id, acting_tenant_id, user=None, request=None) -> bool:
        """
        Delete a role after detaching it from every user holding it.

        Deleting a role that does not exist is a no-op.

        Returns:
            bool: True if a role was deleted

        Raises:
            TenantMismatch: If the role belongs to another tenant
            SystemRoleForbidden: If the role is a system role
        """
        role = Role.objects.filter(id=role_id).first()
        if role is None:
            return False

        if role.tenant_id != acting_tenant_id:
            raise TenantMismatch(role.tenant_id, acting_tenant_id)

        if role.is_system:
            raise SystemRoleForbidden()

        detached = UserRole.objects.detach_role(role)
        role_name = role.name
        role.delete()

        AuditLog.log_action(
            action='role_deleted',
            user=user,
            tenant_id=acting_tenant_id,
            target_type='Role',
            target_id=role_id,
            diff={'name': role_name, 'detached_users': detached},
            request=request,
        )
        logger.info(
            f"Role deleted: {role_name}",
            extra={'role_id': str(role_id), 'detached_users': detached}
        )
        return True


class UserService:
    """Membership and self-service operations on users."""

    @staticmethod
    def list_tenant_users(tenant_id):
        return User.objects.holding_roles_in(tenant_id).order_by('display_name')

    @classmethod
    @transaction.atomic
    def change_roles(cls, acting_tenant_id, acting_user, target_user_id, role_ids,
                     request=None) -> Optional[User]:
        """
        Replace the target user's roles in the acting tenant with ``role_ids``.

        Roles in other tenants and global roles are kept. Unknown role ids
        are ignored; a missing target user makes this a no-op.

        Returns:
            The updated user, or None if it does not exist

        Raises:
            RoleAssignmentError subclass when the guard rejects the change
        """
        target = User.objects.filter(id=target_user_id).first()
        if target is None:
            return None

        old_roles = AuthorityResolver.roles_in_tenant(target, acting_tenant_id)
        new_roles = set(Role.objects.by_ids(role_ids))

        RoleAssignmentGuard.validate_change(acting_tenant_id, acting_user, old_roles, new_roles)
        RoleAssignmentGuard.apply_change(target, old_roles, new_roles)

        AuditLog.log_action(
            action='user_roles_changed',
            user=acting_user,
            tenant_id=acting_tenant_id,
            target_type='User',
            target_id=target.id,
            diff={
                'before': sorted(str(r.id) for r in old_roles),
                'after': sorted(str(r.id) for r in new_roles),
            },
            request=request,
        )
        return target

    @classmethod
    @transaction.atomic
    def remove_from_tenant(cls, acting_tenant_id, target_user_id, acting_user=None,
                           request=None) -> bool:
        """
        Drop every role the target user holds in the acting tenant.

        Returns:
            bool: True if the user existed

        Raises:
            RoleNotPermitsRemoval: If the user holds a system role in the tenant
        """
        target = User.objects.filter(id=target_user_id).first()
        if target is None:
            return False

        roles = AuthorityResolver.roles_in_tenant(target, acting_tenant_id)
        protected = [r for r in roles if r.is_system]
        if protected:
            raise RoleNotPermitsRemoval(
                details={'role_ids': sorted(str(r.id) for r in protected)}
            )

        UserRole.objects.revoke(target, roles)

        AuditLog.log_action(
            action='user_removed_from_tenant',
            user=acting_user,
            tenant_id=acting_tenant_id,
            target_type='User',
            target_id=target.id,
            diff={'removed_roles': sorted(str(r.id) for r in roles)},
            request=request,
        )
        return True

    @staticmethod
    def change_display_name(user: User, display_name) -> User:
        display_name = normalize_name(display_name)
        if not display_name:
            raise NameRequired()
        user.display_name = display_name
        user.save(update_fields=['display_name', 'updated_at'])
        return user

    @classmethod
    @transaction.atomic
    def delete_user(cls, user: User, request=None) -> None:
        """Delete the account; role memberships and principals go with it."""
        AuditLog.log_action(
            action='user_deleted',
            user=user,
            tenant_id=None,
            target_type='User',
            target_id=user.id,
            request=request,
        )
        user.delete()


class InviteService:
    """
    Time-boxed invite tokens carrying a pending role grant.

    ``token_generator`` produces the opaque token string and can be swapped
    for a deterministic one in tests.
    """

    token_generator = staticmethod(generate_invite_token)

    @classmethod
    @transaction.atomic
    def issue(cls, acting_tenant_id, acting_user, role_ids, request=None,
              token_generator=None) -> InviteToken:
        """
        Issue an invite granting ``role_ids`` in the acting tenant.

        The guard runs as for a grant to a user holding nothing yet. The
        token stores the requested ids as given, roles may disappear before
        the invite is accepted.

        Raises:
            TenantMissing: If the acting tenant does not exist
            RoleAssignmentError subclass when the guard rejects the grant
        """
        tenant = None
        if acting_tenant_id is not None:
            tenant = Tenant.objects.filter(id=acting_tenant_id).first()
        if tenant is None:
            raise TenantMissing()

        requested = list(dict.fromkeys(str(role_id) for role_id in role_ids))
        roles = set(Role.objects.by_ids(requested))

        RoleAssignmentGuard.validate_change(acting_tenant_id, acting_user, set(), roles)

        generate = token_generator or cls.token_generator
        invite = InviteToken.objects.create(
            token=generate(),
            tenant=tenant,
            role_ids=requested,
        )

        AuditLog.log_action(
            action='invite_issued',
            user=acting_user,
            tenant_id=tenant.id,
            target_type='InviteToken',
            target_id=invite.id,
            diff={'role_ids': requested, 'expires_at': invite.expires_at.isoformat()},
            request=request,
        )
        return invite

    @staticmethod
    def resolve(token) -> Optional[InviteToken]:
        """Look an invite up without checking expiry."""
        if not token:
            return None
        return InviteToken.objects.select_related('tenant').filter(token=token).first()

    @classmethod
    @transaction.atomic
    def accept(cls, user: User, token, request=None) -> List[Role]:
        """
        Consume an invite: grant its still existing roles to ``user`` and
        delete the token.

        Acceptance is self-service and does not re-run the guard.

        Returns:
            The roles granted

        Raises:
            InvalidToken: If the token does not exist, has expired or was
                already consumed
        """
        invite = (
            InviteToken.objects.select_for_update()
            .filter(token=token).first() if token else None
        )
        if invite is None or invite.is_expired():
            raise InvalidToken()

        consumed, _ = InviteToken.objects.filter(pk=invite.pk).delete()
        if not consumed:
            raise InvalidToken()

        roles = list(Role.objects.by_ids(invite.role_ids))
        UserRole.objects.grant(user, roles)

        AuditLog.log_action(
            action='invite_accepted',
            user=user,
            tenant_id=invite.tenant_id,
            target_type='InviteToken',
            target_id=invite.id,
            diff={
                'requested_role_ids': invite.role_ids,
                'granted_role_ids': sorted(str(r.id) for r in roles),
            },
            request=request,
        )
        return roles

    @staticmethod
    def purge_expired(now=None) -> int:
        """Delete every invite whose expiry lies in the past."""
        deleted, _ = InviteToken.objects.expired(now or timezone.now()).delete()
        return deleted
