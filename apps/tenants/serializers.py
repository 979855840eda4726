"""
Serializers for tenant API endpoints.
"""
from rest_framework import serializers
from apps.tenants.models import Tenant


class TenantSerializer(serializers.ModelSerializer):
    """Serializer for Tenant."""
    
    class Meta:
        model = Tenant
        fields = ['id', 'name', 'created_at', 'updated_at']
        read_only_fields = fields


class TenantNameSerializer(serializers.Serializer):
    """Payload for creating or renaming a tenant."""
    
    name = serializers.CharField(allow_blank=True, max_length=255)
