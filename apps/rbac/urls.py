"""
RBAC API URLs.

Provides endpoints for:
- Role management
- Tenant membership and role-set changes
- Current user self-service
- Invites
"""
from django.urls import path
from apps.rbac.views import (
    RoleListView,
    RoleDetailView,
    TenantUserListView,
    TenantUserDetailView,
    UserRolesView,
    CurrentUserView,
    CurrentUserAuthoritiesView,
    InviteCreateView,
    InviteDetailView,
    InviteAcceptView,
)

app_name = 'rbac'

urlpatterns = [
    # Role endpoints
    path('roles', RoleListView.as_view(), name='role-list'),
    path('roles/<uuid:role_id>', RoleDetailView.as_view(), name='role-detail'),
    
    # Tenant membership endpoints
    path('users', TenantUserListView.as_view(), name='tenant-user-list'),
    path('users/<uuid:user_id>', TenantUserDetailView.as_view(), name='tenant-user-detail'),
    path('users/<uuid:user_id>/roles', UserRolesView.as_view(), name='user-roles'),
    
    # Current user endpoints
    path('user', CurrentUserView.as_view(), name='current-user'),
    path('user/authorities', CurrentUserAuthoritiesView.as_view(), name='current-user-authorities'),
    
    # Invite endpoints
    path('invites', InviteCreateView.as_view(), name='invite-create'),
    path('invites/<str:token>', InviteDetailView.as_view(), name='invite-detail'),
    path('invites/<str:token>/accept', InviteAcceptView.as_view(), name='invite-accept'),
]
