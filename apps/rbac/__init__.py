"""
RBAC (Role-Based Access Control) application.

Provides multi-tenant access control with:
- Global user identity holding roles across tenants
- Tenant-scoped and global roles built from authorities
- Authority prerequisite validation
- Guarded role assignment with super-admin and system-admin protection
- Time-boxed invite tokens
- Audit logging
"""
