# Export capability gate classes and decorators for easy importing
from apps.core.permissions import HasTenantAuthorities, requires_authorities

__all__ = ['HasTenantAuthorities', 'requires_authorities']
