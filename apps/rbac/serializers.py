"""
RBAC serializers for REST API endpoints.

Provides serialization for:
- Roles and role definitions
- Users, their roles and effective authorities
- Role-set changes
- Invite tokens
"""
from rest_framework import serializers
from apps.rbac.authorities import Authority
from apps.rbac.models import User, Role, InviteToken


# ===== ROLE SERIALIZERS =====

class RoleSerializer(serializers.ModelSerializer):
    """Serializer for Role model."""

    tenant_id = serializers.UUIDField(read_only=True, allow_null=True)
    is_system = serializers.BooleanField(read_only=True)
    authorities_text = serializers.CharField(read_only=True)

    class Meta:
        model = Role
        fields = [
            'id', 'tenant_id', 'name', 'kind', 'is_system',
            'authorities', 'authorities_text', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class RoleWriteSerializer(serializers.Serializer):
    """
    Payload for role create and update.

    Only shape is checked here; naming, scope and prerequisite rules are
    enforced by RoleValidator so they report their own error codes.
    """

    name = serializers.CharField(allow_blank=True, trim_whitespace=False, max_length=100)
    authorities = serializers.ListField(
        child=serializers.ChoiceField(choices=Authority.choices),
        required=False,
        default=list,
    )
    is_system = serializers.BooleanField(required=False, default=False)


# ===== USER SERIALIZERS =====

class UserRoleSummarySerializer(serializers.ModelSerializer):
    """Compact role representation nested in user payloads."""

    tenant_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Role
        fields = ['id', 'tenant_id', 'name', 'kind']
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User with the roles it holds."""

    principals = serializers.ListField(
        source='principal_names',
        child=serializers.CharField(),
        read_only=True
    )
    roles = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'display_name', 'principals', 'roles', 'created_at']
        read_only_fields = fields

    def get_roles(self, obj):
        """Roles visible in the serializer's tenant context plus global roles."""
        tenant_id = self.context.get('tenant_id')
        roles = obj.roles.all()
        if tenant_id is not None:
            roles = [r for r in roles if r.tenant_id in (None, tenant_id)]
        return UserRoleSummarySerializer(roles, many=True).data


class DisplayNameSerializer(serializers.Serializer):
    """Payload for changing one's display name."""

    display_name = serializers.CharField(allow_blank=True, max_length=255)


class ChangeRolesSerializer(serializers.Serializer):
    """Payload replacing a user's roles in the acting tenant."""

    role_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=True
    )


class AuthoritiesSerializer(serializers.Serializer):
    """Effective authorities of the caller in the acting tenant."""

    tenant_id = serializers.UUIDField(allow_null=True)
    authorities = serializers.ListField(child=serializers.CharField())


# ===== INVITE SERIALIZERS =====

class InviteCreateSerializer(serializers.Serializer):
    """Payload for issuing an invite."""

    role_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=True
    )


class InviteTokenSerializer(serializers.ModelSerializer):
    """Serializer for InviteToken."""

    tenant_id = serializers.UUIDField(read_only=True)
    tenant_name = serializers.CharField(source='tenant.name', read_only=True)
    expired = serializers.SerializerMethodField()

    class Meta:
        model = InviteToken
        fields = [
            'token', 'tenant_id', 'tenant_name', 'role_ids',
            'expires_at', 'expired', 'created_at'
        ]
        read_only_fields = fields

    def get_expired(self, obj):
        return obj.is_expired()
