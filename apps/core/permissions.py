"""
DRF permission classes and decorators for the capability gate.

This module provides:
- HasTenantAuthorities: DRF permission class that enforces authority requirements
- @requires_authorities: Decorator to declare required authorities on views
"""
import logging
from rest_framework.permissions import BasePermission

logger = logging.getLogger(__name__)


class HasTenantAuthorities(BasePermission):
    """
    DRF permission class that maps the caller's effective authorities in the
    acting tenant to permission to invoke a view.

    Effective authorities are resolved from the caller's tenant roles plus
    their global roles, and cached on the request as ``request.authorities``.
    Requirements declared on the handler method (``put``, ``delete``...) win
    over the ones declared on the view class.

    Usage in views:
        @requires_authorities(Authority.CREATE_ROLES)
        class RoleCreateView(APIView):
            permission_classes = [HasTenantAuthorities]
    """

    def has_permission(self, request, view):
        handler = getattr(view, request.method.lower(), None)
        required = (
            getattr(handler, 'required_authorities', None)
            or getattr(view, 'required_authorities', None)
        )

        if not required:
            return True

        if isinstance(required, str):
            required = {required}
        else:
            required = set(required)

        granted = resolve_request_authorities(request)
        missing = required - granted

        if missing:
            from apps.core.logging import SecurityLogger

            SecurityLogger.log_permission_denied(
                user_id=getattr(request.user, 'id', None),
                tenant_id=getattr(request, 'tenant_id', None),
                required=required,
                missing=missing,
                view=view.__class__.__name__,
                method=request.method,
                path=request.path,
                request_id=getattr(request, 'request_id', None),
            )
            return False

        logger.debug(
            f"Permission granted: User has all required authorities {sorted(required)}",
            extra={
                'required_authorities': sorted(required),
                'view': view.__class__.__name__,
            }
        )

        return True


def resolve_request_authorities(request):
    """
    Effective authorities of ``request.user`` in ``request.tenant_id``.

    Resolved once per request and memoized on the request object.
    """
    cached = getattr(request, 'authorities', None)
    if cached is not None:
        return cached

    from apps.rbac.services import AuthorityResolver

    user = request.user if getattr(request.user, 'is_authenticated', False) else None
    authorities = AuthorityResolver.effective_authorities(
        user, getattr(request, 'tenant_id', None)
    )
    request.authorities = authorities
    return authorities


def requires_authorities(*authorities):
    """
    Decorator to declare required authorities on view classes or methods.

    This decorator sets the required_authorities attribute on the view,
    which is then checked by the HasTenantAuthorities permission class.

    Usage:
        @requires_authorities(Authority.VIEW_ROLES)
        class RoleListView(APIView):
            permission_classes = [HasTenantAuthorities]

    Or on individual methods:
        class RoleDetailView(APIView):
            permission_classes = [HasTenantAuthorities]

            @requires_authorities(Authority.MODIFY_ROLES)
            def put(self, request, role_id):
                pass

    Args:
        *authorities: Authority values required for access

    Returns:
        Decorator function that sets required_authorities attribute
    """
    def decorator(view_or_method):
        view_or_method.required_authorities = set(authorities)
        return view_or_method

    return decorator
