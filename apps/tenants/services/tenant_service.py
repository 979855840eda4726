"""
Tenant management service.

Handles tenant lifecycle operations:
- Tenant creation with its super-admin role granted to the creator
- Tenant rename
"""
import logging
from typing import Optional

from django.db import transaction

from apps.core.exceptions import NameRequired, TenantMissing, TenantNameExists
from apps.core.validators import normalize_name
from apps.rbac.authorities import TENANT_AUTHORITIES, sort_authorities
from apps.rbac.models import User, Role, RoleKind, UserRole, AuditLog
from apps.tenants.models import Tenant

logger = logging.getLogger(__name__)


class TenantService:
    """
    Service for tenant lifecycle.
    
    Provides methods for:
    - Creating tenants with automatic super-admin role assignment
    - Renaming tenants
    """
    
    @staticmethod
    def _seed_superadmin_role(tenant: Tenant) -> Role:
        """
        Seed the super-admin role of a tenant with every tenant authority.
        
        The role is a system role: it cannot be edited, deleted or granted
        by anyone but another super-admin of the same tenant.
        """
        role = Role.objects.superadmin_of(tenant.id)
        if role is None:
            role = Role.objects.create(
                tenant=tenant,
                name=Role.SUPERADMIN_NAME,
                kind=RoleKind.TENANT_SUPERADMIN,
                authorities=sort_authorities(TENANT_AUTHORITIES),
            )
        return role
    
    @classmethod
    @transaction.atomic
    def create_tenant(cls, user: User, name: str, request=None) -> Tenant:
        """
        Create new tenant with user as super-admin.
        
        Args:
            user: User who becomes the tenant's super-admin
            name: Tenant name
            request: Django request object for the audit log
            
        Returns:
            Tenant instance
            
        Raises:
            NameRequired: If the name is blank
            TenantNameExists: If another tenant uses the name
        """
        name = normalize_name(name)
        if not name:
            raise NameRequired()
        
        if Tenant.objects.name_taken(name):
            raise TenantNameExists(f"A tenant named '{name}' already exists.")
        
        tenant = Tenant.objects.create(name=name)
        superadmin_role = cls._seed_superadmin_role(tenant)
        UserRole.objects.grant(user, [superadmin_role])
        
        AuditLog.log_action(
            action='tenant_created',
            user=user,
            tenant_id=tenant.id,
            target_type='Tenant',
            target_id=tenant.id,
            diff={'name': tenant.name, 'superadmin_role_id': str(superadmin_role.id)},
            request=request,
        )
        logger.info(
            f"Tenant created: {tenant.name}",
            extra={'tenant_id': str(tenant.id), 'user_id': str(user.id)}
        )
        
        return tenant
    
    @classmethod
    @transaction.atomic
    def rename_tenant(cls, tenant_id, name: str, user: Optional[User] = None,
                      request=None) -> Tenant:
        """
        Rename a tenant.
        
        Raises:
            NameRequired: If the name is blank
            TenantNameExists: If another tenant uses the name
            TenantMissing: If the tenant does not exist
        """
        name = normalize_name(name)
        if not name:
            raise NameRequired()
        
        if Tenant.objects.name_taken(name, exclude_id=tenant_id):
            raise TenantNameExists(f"A tenant named '{name}' already exists.")
        
        tenant = Tenant.objects.filter(id=tenant_id).first() if tenant_id else None
        if tenant is None:
            raise TenantMissing()
        
        old_name = tenant.name
        tenant.name = name
        tenant.save(update_fields=['name', 'updated_at'])
        
        AuditLog.log_action(
            action='tenant_renamed',
            user=user,
            tenant_id=tenant.id,
            target_type='Tenant',
            target_id=tenant.id,
            diff={'before': old_name, 'after': name},
            request=request,
        )
        
        return tenant
