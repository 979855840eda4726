"""
Exception types and the DRF exception handler.

Policy violations raised by the authorization engine are client errors:
they carry a machine-readable ``code`` plus structured ``details`` and are
rendered as 4xx responses, never retried.
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that logs errors and returns consistent format.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    if isinstance(exc, ClientError):
        logger.warning(
            f"Request rejected: {exc.code}",
            extra={
                'error_code': exc.code,
                'details': exc.details,
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            }
        )
        return Response(
            {
                'error': {
                    'code': exc.code,
                    'message': exc.message,
                    'details': exc.details,
                },
                'request_id': request_id,
            },
            status=exc.status_code
        )

    # Call DRF's default exception handler first
    response = exception_handler(exc, context)

    if response is None:
        logger.error(
            f"API Exception: {exc.__class__.__name__}",
            extra={
                'exception': str(exc),
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            },
            exc_info=True
        )
        return Response(
            {
                'error': 'Internal server error',
                'detail': 'An unexpected error occurred',
                'request_id': request_id,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # Add request_id to all error responses
    if request_id and isinstance(response.data, dict):
        response.data['request_id'] = request_id

    return response


class WardenException(Exception):
    """Base exception for Warden-specific errors."""

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ClientError(WardenException):
    """
    A deterministic rejection of the caller's request.

    Subclasses set ``code`` (machine-readable error kind) and may override
    ``status_code``.
    """
    code = 'ClientError'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'The request was rejected.'

    def __init__(self, message=None, details=None):
        super().__init__(message or self.default_message, details)


# Role validation

class NameRequired(ClientError):
    code = 'NameRequired'
    default_message = 'A name is required.'


class SystemRoleForbidden(ClientError):
    code = 'SystemRoleForbidden'
    default_message = 'System roles cannot be created, modified or deleted.'


class MissingPrerequisiteAuthorities(ClientError):
    code = 'MissingPrerequisiteAuthorities'
    default_message = 'Some authorities require other authorities that were not granted.'

    def __init__(self, sources, required):
        self.sources = sorted(sources)
        self.required = sorted(required)
        super().__init__(
            f"Authorities {', '.join(self.sources)} require {', '.join(self.required)}.",
            {'sources': self.sources, 'required': self.required},
        )


class AuthorityNotTenantScoped(ClientError):
    code = 'AuthorityNotTenantScoped'
    default_message = 'Only tenant authorities can be granted to a tenant role.'

    def __init__(self, authorities):
        self.authorities = sorted(authorities)
        super().__init__(
            f"Authorities {', '.join(self.authorities)} are not tenant authorities.",
            {'authorities': self.authorities},
        )


class ReservedName(ClientError):
    code = 'ReservedName'
    default_message = 'This role name is reserved.'


class GlobalRoleForbidden(ClientError):
    code = 'GlobalRoleForbidden'
    default_message = 'Global roles cannot be created or modified here.'


class RoleNotFound(ClientError):
    code = 'RoleNotFound'
    default_message = 'Role does not exist.'


class TenantMismatch(ClientError):
    code = 'TenantMismatch'
    default_message = 'The role belongs to another tenant.'

    def __init__(self, role_tenant_id, acting_tenant_id):
        self.role_tenant_id = role_tenant_id
        self.acting_tenant_id = acting_tenant_id
        super().__init__(
            details={
                'role_tenant_id': str(role_tenant_id) if role_tenant_id else None,
                'acting_tenant_id': str(acting_tenant_id) if acting_tenant_id else None,
            }
        )


class RoleNameExists(ClientError):
    code = 'RoleNameExists'
    default_message = 'A role with this name already exists.'


# Role assignment

class RoleAssignmentError(ClientError):
    """Raised by the role-assignment guard."""
    status_code = status.HTTP_406_NOT_ACCEPTABLE


class SuperadminGrantRequiresSuperadmin(RoleAssignmentError):
    code = 'SuperadminGrantRequiresSuperadmin'
    default_message = 'Only a super-admin can grant the super-admin role.'


class CannotModifyAnothersSuperadminRole(RoleAssignmentError):
    code = 'CannotModifyAnothersSuperadminRole'
    default_message = "Only a super-admin can change another user's super-admin role."


class SystemAdminRoleReserved(RoleAssignmentError):
    code = 'SystemAdminRoleReserved'
    default_message = 'The system-admin role cannot be granted.'


class SystemAdminRoleImmutable(RoleAssignmentError):
    code = 'SystemAdminRoleImmutable'
    default_message = 'The system-admin role cannot be revoked.'


class GlobalRoleNotAssignable(RoleAssignmentError):
    code = 'GlobalRoleNotAssignable'
    default_message = 'Global roles cannot be assigned within a tenant.'


class TenantScopeMismatch(RoleAssignmentError):
    code = 'TenantScopeMismatch'
    default_message = 'Roles of another tenant cannot be assigned or removed.'


class RoleNotPermitsRemoval(RoleAssignmentError):
    code = 'RoleNotPermitsRemoval'
    default_message = 'Users holding an administrator role cannot be removed from the tenant.'


# Invites and tenants

class InvalidToken(ClientError):
    code = 'InvalidToken'
    default_message = 'The invite token does not exist or has expired.'


class TenantMissing(ClientError):
    code = 'TenantMissing'
    status_code = status.HTTP_412_PRECONDITION_FAILED
    default_message = 'The acting tenant does not exist.'


class TenantNameExists(ClientError):
    code = 'TenantNameExists'
    default_message = 'A tenant with this name already exists.'
