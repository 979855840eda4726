"""
Custom DRF authentication classes.
"""
import logging

import jwt
from django.conf import settings
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed

logger = logging.getLogger(__name__)


class BearerTokenAuthentication(BaseAuthentication):
    """
    Authenticate requests carrying an identity provider's bearer JWT.

    The token is only verified here; issuing it is the identity provider's
    job. The ``sub`` claim is the caller's principal name, resolved to a
    ``User`` through its principals and provisioned on first sight.
    """

    keyword = 'Bearer'

    def authenticate(self, request):
        auth = get_authorization_header(request).split()

        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None

        if len(auth) != 2:
            raise AuthenticationFailed('Invalid Authorization header.')

        try:
            token = auth[1].decode()
        except UnicodeError:
            raise AuthenticationFailed('Invalid Authorization header.')

        payload = self._decode(token)

        principal = payload.get('sub')
        if not principal:
            raise AuthenticationFailed('Token has no subject.')

        from apps.rbac.models import User
        user = User.objects.get_or_provision(
            principal, display_name=payload.get('name', '')
        )
        return (user, payload)

    def authenticate_header(self, request):
        return self.keyword

    def _decode(self, token):
        options = {}
        kwargs = {}
        audience = getattr(settings, 'JWT_AUDIENCE', None)
        if audience:
            kwargs['audience'] = audience
        else:
            options['verify_aud'] = False

        try:
            return jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
                options=options,
                **kwargs
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed('Token has expired.')
        except jwt.InvalidTokenError as e:
            logger.info(
                "Rejected bearer token",
                extra={'reason': str(e)}
            )
            raise AuthenticationFailed('Invalid token.')
