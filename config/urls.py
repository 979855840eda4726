"""
URL configuration for Warden.
"""
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    # API Documentation
    path('schema/', SpectacularAPIView.as_view(), name='schema'),
    path('schema/swagger/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    
    # Tenant endpoints
    path('v1/', include('apps.tenants.urls')),  # Tenant creation and rename
    
    # RBAC endpoints
    path('v1/', include('apps.rbac.urls')),  # Roles, memberships, current user, invites
]
