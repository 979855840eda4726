"""
Tenant models for multi-tenant isolation.
"""
from django.db import models
from apps.core.models import BaseModel


class TenantManager(models.Manager):
    """Manager for tenant lookups."""
    
    def name_taken(self, name, exclude_id=None):
        """Check whether another tenant already uses ``name``."""
        qs = self.filter(name=name)
        if exclude_id:
            qs = qs.exclude(id=exclude_id)
        return qs.exists()


class Tenant(BaseModel):
    """
    An isolated organizational scope.
    
    Roles are scoped to exactly one tenant or to none (global). Tenants are
    created on registration and may be renamed; they are never merged.
    """
    
    name = models.CharField(
        max_length=255,
        unique=True,
        help_text="Tenant name, unique across the platform"
    )
    
    objects = TenantManager()
    
    class Meta:
        db_table = 'tenants'
        ordering = ['name']
    
    def __str__(self):
        return self.name
