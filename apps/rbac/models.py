"""
RBAC models for multi-tenant access control.

Implements:
- User (global identity holding roles across tenants)
- Principal (login names resolving to a user)
- Role (tenant-scoped or global role definitions with authorities)
- UserRole (explicit user/role membership join table)
- InviteToken (time-boxed pending role grants)
- AuditLog (audit trail of every mutation)
"""
import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from apps.core.models import BaseModel
from apps.rbac.authorities import Authority, TENANT_AUTHORITIES, sort_authorities

logger = logging.getLogger(__name__)


class UserManager(models.Manager):
    """Manager for User queries."""

    def by_principal(self, principal):
        """Find user by one of their principal names."""
        return self.filter(principals__name=principal).first()

    def get_or_provision(self, principal, display_name=''):
        """
        Get the user owning ``principal``, creating one on first sight.

        Used by the identity layer: the identity provider vouches for the
        principal, this system only tracks what it may do.
        """
        user = self.by_principal(principal)
        if user is not None:
            return user

        user = self.create(display_name=display_name or principal)
        Principal.objects.create(user=user, name=principal)
        logger.info(
            "Provisioned user for new principal",
            extra={'user_id': str(user.id), 'principal': principal}
        )
        return user

    def holding_roles_in(self, tenant_id):
        """Users holding at least one role in ``tenant_id``."""
        return self.filter(user_roles__role__tenant_id=tenant_id).distinct()


class User(BaseModel):
    """
    Global user identity.

    A user may hold roles in many tenants simultaneously plus any number of
    global roles. Roles are held by reference through ``UserRole``.
    """

    display_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Name shown to other users"
    )
    roles = models.ManyToManyField(
        'Role',
        through='UserRole',
        related_name='users',
        blank=True,
        help_text="Roles held by this user across all tenants"
    )

    objects = UserManager()

    class Meta:
        db_table = 'users'
        ordering = ['display_name']

    def __str__(self):
        return self.display_name or str(self.id)

    @property
    def is_authenticated(self):
        """Always True for real users (DRF permission compatibility)."""
        return True

    @property
    def is_anonymous(self):
        return False

    @property
    def principal_names(self):
        return sorted(self.principals.values_list('name', flat=True))


class Principal(BaseModel):
    """A login name (e.g. an e-mail address) resolving to exactly one user."""

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='principals',
        help_text="User this principal belongs to"
    )
    name = models.CharField(
        max_length=320,
        unique=True,
        help_text="Principal name as asserted by the identity provider"
    )

    class Meta:
        db_table = 'user_principals'
        ordering = ['name']

    def __str__(self):
        return self.name


class RoleKind(models.TextChoices):
    """
    What a role is, fixed when the role is created.

    ORDINARY roles are managed through the role endpoints. The per-tenant
    super-admin role and the platform system-admin role are system roles.
    """
    ORDINARY = 'ORDINARY', 'Ordinary'
    TENANT_SUPERADMIN = 'TENANT_SUPERADMIN', 'Tenant super-admin'
    SYSTEM_ADMIN = 'SYSTEM_ADMIN', 'System admin'


class RoleManager(models.Manager):
    """Manager for Role queries with tenant scoping."""

    def for_tenant(self, tenant_id):
        """Get all roles scoped to a specific tenant."""
        return self.filter(tenant_id=tenant_id)

    def global_roles(self):
        return self.filter(tenant__isnull=True)

    def superadmin_of(self, tenant_id):
        """The super-admin role of a tenant, if seeded."""
        return self.filter(tenant_id=tenant_id, kind=RoleKind.TENANT_SUPERADMIN).first()

    def name_taken(self, name, exclude_id=None):
        """Check global role name uniqueness."""
        qs = self.filter(name=name)
        if exclude_id:
            qs = qs.exclude(id=exclude_id)
        return qs.exists()

    def by_ids(self, role_ids):
        """
        Resolve a collection of role ids, silently skipping unknown or
        malformed ones.
        """
        valid_ids = []
        for role_id in role_ids:
            try:
                valid_ids.append(self.model._meta.pk.to_python(role_id))
            except ValidationError:
                continue
        return self.filter(id__in=valid_ids)


class Role(BaseModel):
    """
    A named set of authorities, scoped to one tenant or global.

    ``tenant`` is null for global roles. ``kind`` never changes after
    creation.
    """

    SUPERADMIN_NAME = 'Administrator'
    SYSADMIN_NAME = 'SysAdmin'
    RESERVED_NAMES = (SUPERADMIN_NAME, SYSADMIN_NAME)

    tenant = models.ForeignKey(
        'tenants.Tenant',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='roles',
        db_index=True,
        help_text="Tenant this role belongs to (null for global roles)"
    )
    name = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Role name (unique across the platform for ordinary roles)"
    )
    kind = models.CharField(
        max_length=32,
        choices=RoleKind.choices,
        default=RoleKind.ORDINARY,
        db_index=True,
        help_text="Role kind, immutable after creation"
    )
    authorities = models.JSONField(
        default=list,
        blank=True,
        help_text="Authority names granted by this role"
    )

    objects = RoleManager()

    class Meta:
        db_table = 'roles'
        ordering = ['name']
        indexes = [
            models.Index(fields=['tenant', 'kind'], name='roles_tenant_kind_idx'),
        ]

    def __str__(self):
        scope = self.tenant.name if self.tenant_id else 'global'
        return f"{scope} - {self.name}"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_kind = instance.__dict__.get('kind')
        return instance

    def save(self, *args, **kwargs):
        loaded_kind = getattr(self, '_loaded_kind', None)
        if loaded_kind is not None and loaded_kind != self.kind:
            raise ValueError(
                f"Role kind is immutable (was {loaded_kind}, got {self.kind})"
            )
        self.authorities = sort_authorities(self.authorities)
        super().save(*args, **kwargs)
        self._loaded_kind = self.kind

    @property
    def is_system(self):
        return self.kind != RoleKind.ORDINARY

    @property
    def is_global(self):
        return self.tenant_id is None

    @property
    def is_superadmin(self):
        return self.kind == RoleKind.TENANT_SUPERADMIN

    @property
    def is_system_admin(self):
        return self.kind == RoleKind.SYSTEM_ADMIN

    @property
    def authority_set(self):
        return {Authority(value) for value in self.authorities}

    @property
    def authorities_text(self):
        """
        Human readable summary: "None", "All" (every tenant authority) or the
        sorted authority names.
        """
        authorities = self.authority_set
        if not authorities:
            return 'None'
        if authorities >= TENANT_AUTHORITIES:
            return 'All'
        return ', '.join(sort_authorities(authorities))


class UserRoleManager(models.Manager):
    """Manager for user/role memberships."""

    def grant(self, user, roles):
        """Add ``roles`` to ``user``; already held roles are left alone."""
        for role in roles:
            self.get_or_create(user=user, role=role)

    def revoke(self, user, roles):
        """Remove exactly ``roles`` from ``user``."""
        role_ids = [role.id for role in roles]
        if not role_ids:
            return 0
        deleted, _ = self.filter(user=user, role_id__in=role_ids).delete()
        return deleted

    def detach_role(self, role):
        """Remove ``role`` from every user holding it."""
        deleted, _ = self.filter(role=role).delete()
        return deleted


class UserRole(BaseModel):
    """
    Membership of a user in a role.

    Deleting a role never cascades here: memberships must be detached with
    ``UserRole.objects.detach_role`` before the role row goes away.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='user_roles',
        help_text="User holding the role"
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.PROTECT,
        related_name='user_roles',
        help_text="Role held"
    )

    objects = UserRoleManager()

    class Meta:
        db_table = 'user_roles'
        unique_together = [('user', 'role')]

    def __str__(self):
        return f"{self.user} - {self.role}"


def generate_invite_token():
    """Opaque URL-safe invite token with 256 bits of entropy."""
    return secrets.token_urlsafe(32)


def invite_token_ttl():
    return timedelta(hours=getattr(settings, 'INVITE_TOKEN_TTL_HOURS', 24))


class InviteTokenManager(models.Manager):
    """Manager for invite tokens."""

    def expired(self, now=None):
        """Tokens whose expiry lies strictly in the past."""
        return self.filter(expires_at__lt=now or timezone.now())


class InviteToken(BaseModel):
    """
    A pending role grant for whoever presents the token.

    Stores the raw role ids requested at issuance; roles deleted before
    acceptance are skipped when the token is consumed.
    """

    token = models.CharField(
        max_length=128,
        unique=True,
        db_index=True,
        help_text="Opaque invite token"
    )
    tenant = models.ForeignKey(
        'tenants.Tenant',
        on_delete=models.CASCADE,
        related_name='invite_tokens',
        help_text="Tenant the invite grants access to"
    )
    role_ids = models.JSONField(
        default=list,
        blank=True,
        help_text="Ids of the roles granted on acceptance"
    )
    expires_at = models.DateTimeField(
        db_index=True,
        help_text="Token is invalid after this moment"
    )

    objects = InviteTokenManager()

    class Meta:
        db_table = 'invite_tokens'
        ordering = ['-created_at']

    def __str__(self):
        return f"Invite to {self.tenant_id} (expires {self.expires_at})"

    def save(self, *args, **kwargs):
        if not self.expires_at:
            self.expires_at = timezone.now() + invite_token_ttl()
        super().save(*args, **kwargs)

    def is_expired(self, now=None):
        return self.expires_at < (now or timezone.now())


class AuditLogManager(models.Manager):
    """Manager for AuditLog queries with tenant scoping."""

    def for_tenant(self, tenant_id):
        """Get audit logs for a specific tenant."""
        return self.filter(tenant_id=tenant_id)

    def by_action(self, action):
        """Get audit logs for a specific action."""
        return self.filter(action=action)


class AuditLog(BaseModel):
    """
    Audit trail for tenant, role, membership and invite changes.
    """

    tenant_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Tenant this action belongs to (null for platform-level)"
    )
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="User who performed the action (null for system actions)"
    )

    # Action Details
    action = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Action performed (e.g., 'role_created', 'user_roles_changed')"
    )
    target_type = models.CharField(
        max_length=50,
        help_text="Type of target entity (e.g., 'Role', 'User')"
    )
    target_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="ID of target entity"
    )
    diff = models.JSONField(
        default=dict,
        blank=True,
        help_text="Before/after changes in JSON format"
    )

    # Request Context
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the request"
    )
    user_agent = models.TextField(
        blank=True,
        help_text="User agent string"
    )
    request_id = models.CharField(
        max_length=64,
        blank=True,
        db_index=True,
        help_text="Request ID for tracing"
    )

    objects = AuditLogManager()

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant_id', 'created_at'], name='audit_tenant_created_idx'),
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
        ]

    def __str__(self):
        return f"{self.tenant_id or 'platform'} - {self.user_id or 'system'} - {self.action}"

    @classmethod
    def log_action(cls, action, user=None, tenant_id=None, target_type='',
                   target_id=None, diff=None, request=None):
        """
        Create an audit log entry inside the caller's transaction.

        Args:
            action: Action being performed
            user: User performing the action
            tenant_id: Tenant context
            target_type: Type of target entity
            target_id: ID of target entity
            diff: Before/after changes
            request: Django request object (for IP, user agent, request ID)

        Returns:
            AuditLog instance
        """
        if user is not None and not getattr(user, 'is_authenticated', False):
            user = None

        log_data = {
            'action': action,
            'user': user,
            'tenant_id': tenant_id,
            'target_type': target_type,
            'target_id': target_id,
            'diff': diff or {},
        }

        if request is not None:
            log_data['ip_address'] = cls._get_client_ip(request)
            log_data['user_agent'] = request.META.get('HTTP_USER_AGENT', '')
            log_data['request_id'] = getattr(request, 'request_id', None) or ''

        return cls.objects.create(**log_data)

    @staticmethod
    def _get_client_ip(request):
        """Extract client IP from request."""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')
