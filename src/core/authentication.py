"""DRF authenticator backed by ``JWTAuthMiddleware``.

The middleware already decoded the access token (Bearer header or ``token``
cookie) and loaded the account; DRF only needs to be told about it so that
``request.user`` and ``request.auth`` line up with the Django request.
"""

from typing import Any, Optional, Tuple

from rest_framework.authentication import BaseAuthentication


class MiddlewareUserAuthentication(BaseAuthentication):
    """Return the middleware's user and the decoded claims as ``request.auth``.

    Anonymous requests fall through so public endpoints keep working; the
    permission classes decide whether a login was required.
    """

    def authenticate(self, request) -> Optional[Tuple[Any, Optional[dict]]]:
        django_request = getattr(request, "_request", None)
        user = getattr(django_request, "user", None)
        if user is None or not user.is_authenticated:
            return None
        # ``jti`` and ``exp`` are needed by logout to blocklist the token.
        return user, getattr(django_request, "access_token_payload", None)

    def authenticate_header(self, request) -> str:
        # A non-empty header keeps DRF from downgrading 401 responses to 403.
        return "Bearer"


__all__ = ["MiddlewareUserAuthentication"]
