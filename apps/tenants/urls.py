"""
Tenant API URLs.
"""
from django.urls import path
from apps.tenants.views import TenantCreateView, CurrentTenantView

app_name = 'tenants'

urlpatterns = [
    path('tenants', TenantCreateView.as_view(), name='tenant-create'),
    path('tenants/current', CurrentTenantView.as_view(), name='tenant-current'),
]
