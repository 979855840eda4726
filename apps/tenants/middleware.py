"""
Tenant context middleware for multi-tenant isolation.

Extracts the claimed acting tenant from request headers so every view and
service call runs scoped to it.
"""
import logging
import uuid
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


class TenantContextMiddleware(MiddlewareMixin):
    """
    Attach request tracing and acting tenant context.

    This middleware:
    1. Generates or propagates X-Request-ID as ``request.request_id``
    2. Reads the X-TenantID header into ``request.tenant_id``
    3. Rejects malformed tenant ids with a 400 response

    The tenant id is trusted as claimed; whether the caller may act in it is
    decided by the capability gate and the role-assignment guard.
    """

    TENANT_HEADER = 'X-TenantID'

    # Paths that never carry a tenant context
    PUBLIC_PATHS = [
        '/schema',
    ]

    def process_request(self, request):
        request_id = request.headers.get('X-Request-ID', str(uuid.uuid4()))
        request.request_id = request_id
        request.tenant_id = None

        if self._is_public_path(request.path):
            return None

        raw_tenant_id = request.headers.get(self.TENANT_HEADER)
        if not raw_tenant_id:
            return None

        try:
            request.tenant_id = uuid.UUID(raw_tenant_id.strip())
        except ValueError:
            logger.warning(
                f"Malformed tenant id header: {raw_tenant_id!r}",
                extra={'request_id': request_id}
            )
            return self._error_response(
                'INVALID_TENANT_ID',
                f'{self.TENANT_HEADER} header must be a UUID',
                status=400
            )

        return None

    def process_response(self, request, response):
        """Add request ID to response headers."""
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id
        return response

    def _is_public_path(self, path):
        return any(path.startswith(public_path) for public_path in self.PUBLIC_PATHS)

    def _error_response(self, code, message, status=400, details=None):
        """Generate standardized error response."""
        error_data = {
            'error': {
                'code': code,
                'message': message,
            }
        }

        if details:
            error_data['error']['details'] = details

        return JsonResponse(error_data, status=status)
