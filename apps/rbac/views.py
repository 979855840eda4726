"""
RBAC REST API views.

Implements endpoints for:
- Role management (list, create, update, delete)
- Tenant membership (role-set changes, removal from tenant)
- Self-service (profile, display name, account deletion, authorities)
- Invites (issue, resolve, accept)

The acting tenant comes from the X-TenantID header (see
TenantContextMiddleware); required authorities are checked against the
caller's effective authorities in that tenant by HasTenantAuthorities.
"""
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.core.permissions import HasTenantAuthorities, requires_authorities, resolve_request_authorities
from apps.rbac.authorities import Authority, sort_authorities
from apps.rbac.models import Role
from apps.rbac.services import RoleService, UserService, InviteService
from apps.rbac.serializers import (
    RoleSerializer, RoleWriteSerializer, UserSerializer, DisplayNameSerializer,
    ChangeRolesSerializer, AuthoritiesSerializer, InviteCreateSerializer,
    InviteTokenSerializer,
)


TENANT_HEADER_PARAMETER = OpenApiParameter(
    name='X-TenantID',
    type=OpenApiTypes.UUID,
    location=OpenApiParameter.HEADER,
    required=False,
    description='Acting tenant for the request',
)


@extend_schema_view(
    get=extend_schema(
        tags=['Roles'],
        summary='List roles',
        description='''
List the roles of the acting tenant, including its super-admin role.

**Required authority:** `VIEW_ROLES`
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        responses={200: RoleSerializer(many=True)},
    ),
    post=extend_schema(
        tags=['Roles'],
        summary='Create role',
        description='''
Create an ordinary role in the acting tenant.

Validation order: name present, not flagged system, authority prerequisites
satisfied, tenant authorities only, name not reserved, tenant present, name
unused.

**Required authority:** `CREATE_ROLES`
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        request=RoleWriteSerializer,
        responses={
            201: RoleSerializer,
            400: OpenApiTypes.OBJECT,
            403: OpenApiTypes.OBJECT,
            412: OpenApiTypes.OBJECT,
        },
    ),
)
class RoleListView(APIView):
    """
    GET /v1/roles
    POST /v1/roles
    """

    permission_classes = [IsAuthenticated, HasTenantAuthorities]

    @requires_authorities(Authority.VIEW_ROLES)
    def get(self, request):
        roles = RoleService.list_roles(request.tenant_id)
        return Response(RoleSerializer(roles, many=True).data)

    @requires_authorities(Authority.CREATE_ROLES)
    def post(self, request):
        serializer = RoleWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        role = RoleService.create_role(
            request.tenant_id,
            name=serializer.validated_data['name'],
            authorities=serializer.validated_data['authorities'],
            is_system=serializer.validated_data['is_system'],
            user=request.user,
            request=request,
        )
        return Response(RoleSerializer(role).data, status=status.HTTP_201_CREATED)


@extend_schema_view(
    get=extend_schema(
        tags=['Roles'],
        summary='Get role',
        parameters=[TENANT_HEADER_PARAMETER],
        responses={200: RoleSerializer, 404: OpenApiTypes.OBJECT},
    ),
    put=extend_schema(
        tags=['Roles'],
        summary='Update role',
        description='''
Rename a role and replace its authorities. System roles and roles of other
tenants cannot be updated.

**Required authority:** `MODIFY_ROLES`
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        request=RoleWriteSerializer,
        responses={200: RoleSerializer, 400: OpenApiTypes.OBJECT},
    ),
    delete=extend_schema(
        tags=['Roles'],
        summary='Delete role',
        description='''
Delete a role, removing it from every user holding it first. Deleting a role
that does not exist succeeds.

**Required authority:** `DELETE_ROLES`
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        responses={204: None, 400: OpenApiTypes.OBJECT},
    ),
)
class RoleDetailView(APIView):
    """
    GET /v1/roles/{id}
    PUT /v1/roles/{id}
    DELETE /v1/roles/{id}
    """

    permission_classes = [IsAuthenticated, HasTenantAuthorities]

    @requires_authorities(Authority.VIEW_ROLES)
    def get(self, request, role_id):
        role = get_object_or_404(Role, id=role_id, tenant_id=request.tenant_id)
        return Response(RoleSerializer(role).data)

    @requires_authorities(Authority.MODIFY_ROLES)
    def put(self, request, role_id):
        serializer = RoleWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        role = RoleService.update_role(
            role_id,
            request.tenant_id,
            name=serializer.validated_data['name'],
            authorities=serializer.validated_data['authorities'],
            user=request.user,
            request=request,
        )
        return Response(RoleSerializer(role).data)

    @requires_authorities(Authority.DELETE_ROLES)
    def delete(self, request, role_id):
        RoleService.delete_role(role_id, request.tenant_id, user=request.user, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    get=extend_schema(
        tags=['Users'],
        summary='List tenant users',
        description='''
List users holding at least one role in the acting tenant.

**Required authority:** `VIEW_USERS`
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        responses={200: UserSerializer(many=True)},
    )
)
@requires_authorities(Authority.VIEW_USERS)
class TenantUserListView(APIView):
    """
    GET /v1/users
    """

    permission_classes = [IsAuthenticated, HasTenantAuthorities]

    def get(self, request):
        users = UserService.list_tenant_users(request.tenant_id).prefetch_related('roles')
        serializer = UserSerializer(users, many=True, context={'tenant_id': request.tenant_id})
        return Response(serializer.data)


@extend_schema_view(
    delete=extend_schema(
        tags=['Users'],
        summary='Remove user from tenant',
        description='''
Remove every role the user holds in the acting tenant. Users holding the
tenant's super-admin role or the system-admin role cannot be removed.
Removing a user that does not exist succeeds.

**Required authority:** `DELETE_USERS`
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        responses={204: None, 406: OpenApiTypes.OBJECT},
    )
)
@requires_authorities(Authority.DELETE_USERS)
class TenantUserDetailView(APIView):
    """
    DELETE /v1/users/{id}
    """

    permission_classes = [IsAuthenticated, HasTenantAuthorities]

    def delete(self, request, user_id):
        UserService.remove_from_tenant(
            request.tenant_id, user_id, acting_user=request.user, request=request
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    put=extend_schema(
        tags=['Users'],
        summary='Replace user roles',
        description='''
Replace the roles a user holds in the acting tenant. Roles in other tenants
and global roles are kept. Only super-admins may grant or revoke the
super-admin role; the system-admin role can never be granted or revoked here.

**Required authority:** `MODIFY_USER_ROLES`
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        request=ChangeRolesSerializer,
        responses={200: UserSerializer, 204: None, 406: OpenApiTypes.OBJECT},
    )
)
@requires_authorities(Authority.MODIFY_USER_ROLES)
class UserRolesView(APIView):
    """
    PUT /v1/users/{id}/roles
    """

    permission_classes = [IsAuthenticated, HasTenantAuthorities]

    def put(self, request, user_id):
        serializer = ChangeRolesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        target = UserService.change_roles(
            request.tenant_id,
            request.user,
            user_id,
            serializer.validated_data['role_ids'],
            request=request,
        )
        if target is None:
            return Response(status=status.HTTP_204_NO_CONTENT)

        return Response(UserSerializer(target, context={'tenant_id': request.tenant_id}).data)


@extend_schema_view(
    get=extend_schema(
        tags=['Current user'],
        summary='Get current user',
        parameters=[TENANT_HEADER_PARAMETER],
        responses={200: UserSerializer},
    ),
    put=extend_schema(
        tags=['Current user'],
        summary='Change display name',
        request=DisplayNameSerializer,
        responses={200: UserSerializer, 400: OpenApiTypes.OBJECT},
    ),
    delete=extend_schema(
        tags=['Current user'],
        summary='Delete own account',
        responses={204: None},
    ),
)
class CurrentUserView(APIView):
    """
    GET /v1/user
    PUT /v1/user
    DELETE /v1/user
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = UserSerializer(request.user, context={'tenant_id': request.tenant_id})
        return Response(serializer.data)

    def put(self, request):
        serializer = DisplayNameSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = UserService.change_display_name(
            request.user, serializer.validated_data['display_name']
        )
        return Response(UserSerializer(user, context={'tenant_id': request.tenant_id}).data)

    def delete(self, request):
        UserService.delete_user(request.user, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    get=extend_schema(
        tags=['Current user'],
        summary='Get effective authorities',
        description='''
Authorities of the caller in the acting tenant: those of their roles in the
tenant plus those of their global roles.
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        responses={200: AuthoritiesSerializer},
    )
)
class CurrentUserAuthoritiesView(APIView):
    """
    GET /v1/user/authorities
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        authorities = resolve_request_authorities(request)
        serializer = AuthoritiesSerializer({
            'tenant_id': request.tenant_id,
            'authorities': sort_authorities(authorities),
        })
        return Response(serializer.data)


@extend_schema_view(
    post=extend_schema(
        tags=['Invites'],
        summary='Issue invite',
        description='''
Issue an invite token granting the given roles in the acting tenant. The
token is valid for 24 hours and can be used once.

**Required authority:** `CREATE_USERS`
        ''',
        parameters=[TENANT_HEADER_PARAMETER],
        request=InviteCreateSerializer,
        responses={
            201: InviteTokenSerializer,
            406: OpenApiTypes.OBJECT,
            412: OpenApiTypes.OBJECT,
        },
    )
)
@requires_authorities(Authority.CREATE_USERS)
class InviteCreateView(APIView):
    """
    POST /v1/invites
    """

    permission_classes = [IsAuthenticated, HasTenantAuthorities]

    def post(self, request):
        serializer = InviteCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        invite = InviteService.issue(
            request.tenant_id,
            request.user,
            serializer.validated_data['role_ids'],
            request=request,
        )
        return Response(InviteTokenSerializer(invite).data, status=status.HTTP_201_CREATED)


@extend_schema_view(
    get=extend_schema(
        tags=['Invites'],
        summary='Resolve invite',
        description='Look up an invite token. Expired tokens are returned with `expired: true`.',
        responses={200: InviteTokenSerializer, 404: OpenApiTypes.OBJECT},
    )
)
class InviteDetailView(APIView):
    """
    GET /v1/invites/{token}
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, token):
        invite = InviteService.resolve(token)
        if invite is None:
            return Response(
                {'error': {'code': 'NotFound', 'message': 'Invite not found.'}},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(InviteTokenSerializer(invite).data)


@extend_schema_view(
    post=extend_schema(
        tags=['Invites'],
        summary='Accept invite',
        description='''
Accept an invite: the caller receives the invite's roles that still exist and
the token is consumed.
        ''',
        request=None,
        responses={200: UserSerializer, 400: OpenApiTypes.OBJECT},
    )
)
class InviteAcceptView(APIView):
    """
    POST /v1/invites/{token}/accept
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, token):
        InviteService.accept(request.user, token, request=request)
        serializer = UserSerializer(request.user, context={'tenant_id': request.tenant_id})
        return Response(serializer.data)
