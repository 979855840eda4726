"""
Pytest configuration and fixtures.
"""
import pytest
from django.conf import settings
import django


def pytest_configure(config):
    """Configure Django settings for tests."""
    settings.DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
    django.setup()


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def make_user(db):
    """Factory creating a user owning one principal."""
    from apps.rbac.models import User

    def _make_user(principal, display_name=''):
        return User.objects.get_or_provision(principal, display_name=display_name)

    return _make_user


@pytest.fixture
def make_role(db):
    """Factory creating an ordinary role directly, bypassing validation."""
    from apps.rbac.models import Role, RoleKind

    def _make_role(tenant, name, authorities=(), kind=RoleKind.ORDINARY):
        return Role.objects.create(
            tenant=tenant,
            name=name,
            kind=kind,
            authorities=list(authorities),
        )

    return _make_role


@pytest.fixture
def tenant(db):
    """Create a test tenant with its super-admin role."""
    from apps.tenants.models import Tenant
    from apps.tenants.services import TenantService

    tenant = Tenant.objects.create(name='Acme')
    TenantService._seed_superadmin_role(tenant)
    return tenant


@pytest.fixture
def other_tenant(db):
    """Create another test tenant for isolation tests."""
    from apps.tenants.models import Tenant
    from apps.tenants.services import TenantService

    tenant = Tenant.objects.create(name='Globex')
    TenantService._seed_superadmin_role(tenant)
    return tenant


@pytest.fixture
def superadmin_role(tenant):
    from apps.rbac.models import Role
    return Role.objects.superadmin_of(tenant.id)


@pytest.fixture
def other_superadmin_role(other_tenant):
    from apps.rbac.models import Role
    return Role.objects.superadmin_of(other_tenant.id)


@pytest.fixture
def system_admin_role(db):
    """Create the global system-admin role."""
    from apps.rbac.authorities import GLOBAL_AUTHORITIES
    from apps.rbac.models import Role, RoleKind
    return Role.objects.create(
        tenant=None,
        name=Role.SYSADMIN_NAME,
        kind=RoleKind.SYSTEM_ADMIN,
        authorities=list(GLOBAL_AUTHORITIES),
    )


@pytest.fixture
def superadmin(make_user, superadmin_role):
    """User holding the super-admin role of ``tenant``."""
    from apps.rbac.models import UserRole
    user = make_user('owner@acme.test', 'Owner')
    UserRole.objects.grant(user, [superadmin_role])
    return user


@pytest.fixture
def user(make_user):
    """User holding no roles."""
    return make_user('member@acme.test', 'Member')


@pytest.fixture
def system_admin(make_user, system_admin_role):
    """User holding the global system-admin role."""
    from apps.rbac.models import UserRole
    user = make_user('root@warden.test', 'Root')
    UserRole.objects.grant(user, [system_admin_role])
    return user


@pytest.fixture
def tenant_client(api_client, tenant):
    """Factory returning an API client authenticated as ``user`` in ``tenant``."""

    def _client(user, tenant_id=None):
        api_client.force_authenticate(user=user)
        api_client.credentials(HTTP_X_TENANTID=str(tenant_id or tenant.id))
        return api_client

    return _client
