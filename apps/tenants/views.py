"""
Tenant API views.
"""
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, extend_schema_view
from drf_spectacular.types import OpenApiTypes

from apps.core.permissions import HasTenantAuthorities, requires_authorities
from apps.rbac.authorities import Authority
from apps.rbac.views import TENANT_HEADER_PARAMETER
from apps.tenants.services import TenantService
from apps.tenants.serializers import TenantSerializer, TenantNameSerializer



@extend_schema_view(
    post=extend_schema(
        tags=['Tenants'],
        summary='Create tenant',
        description='''
Create a tenant. The caller receives the new tenant's super-admin role, which
holds every tenant authority.

**Required authority:** `CREATE_TENANTS` (global)
        ''',
        request=TenantNameSerializer,
        responses={
            201: TenantSerializer,
            400: OpenApiTypes.OBJECT,
            403: OpenApiTypes.OBJECT,
        },
    )
)
@requires_authorities(Authority.CREATE_TENANTS)
class TenantCreateView(APIView):
    """
    POST /v1/tenants
    """
    
    permission_classes = [IsAuthenticated, HasTenantAuthorities]
    
    def post(self, request):
        serializer = TenantNameSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        
        tenant = TenantService.create_tenant(
            request.user, serializer.validated_data['name'], request=request
        )
        return Response(TenantSerializer(tenant).data, status=status.HTTP_201_CREATED)


@extend_schema_view(
    put=extend_schema(
        tags=['Tenants'],
        summary='Rename acting tenant',
        description='''
Rename the tenant given by the X-TenantID header.

**Required authority:** `MODIFY_TENANT`
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        request=TenantNameSerializer,
        responses={
            200: TenantSerializer,
            400: OpenApiTypes.OBJECT,
            412: OpenApiTypes.OBJECT,
        },
    )
)
@requires_authorities(Authority.MODIFY_TENANT)
class CurrentTenantView(APIView):
    """
    PUT /v1/tenants/current
    """
    
    permission_classes = [IsAuthenticated, HasTenantAuthorities]
    
    def put(self, request):
        serializer = TenantNameSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        
        tenant = TenantService.rename_tenant(
            request.tenant_id,
            serializer.validated_data['name'],
            user=request.user,
            request=request,
        )
        return Response(TenantSerializer(tenant).data)
