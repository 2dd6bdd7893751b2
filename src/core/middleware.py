"""Middleware to authenticate requests via JWT and Redis blocklist."""

import logging
from typing import Optional

from django.contrib.auth.models import AnonymousUser
from django.http import JsonResponse
from django.urls import reverse
from django.utils.deprecation import MiddlewareMixin
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed

from authentication.models import User
from authentication.services import BlocklistUnavailable, TokenService

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "token"

# Routes that must work with a stale access token: they rely on the refresh
# cookie, not on the access token.
SESSION_RECOVERY_ROUTES = ("auth-refresh", "auth-logout")


class JWTAuthMiddleware(MiddlewareMixin):
    """Decode the access JWT (Bearer header or ``token`` cookie) and attach request.user."""

    def process_request(self, request):  # type: ignore[override]
        """Authenticate request using the access token if one is present."""
        token = get_access_token(request)
        request.access_token_payload = None
        request.user = AnonymousUser()
        if not token:
            return None

        try:
            payload = TokenService.decode_access_token(token)
            jti = payload.get("jti")
            if not jti:
                return self._reject(request, _unauthorized("Invalid token."))

            if TokenService.is_token_blocked(jti):
                return self._reject(request, _unauthorized("Token revoked."))

            user = self._get_user(payload.get("sub"))
            if not user:
                return self._reject(request, _unauthorized("User not found."))

            request.user = user
            request.access_token_payload = payload
            return None

        except AuthenticationFailed as exc:
            return self._reject(request, _unauthorized(str(exc.detail)))
        except BlocklistUnavailable:
            logger.error("Blocklist unavailable while authenticating request")
            return self._reject(request, _service_unavailable())

    @staticmethod
    def _reject(request, response: JsonResponse) -> Optional[JsonResponse]:
        """Refresh and logout continue anonymously; every other route gets ``response``."""
        if is_session_recovery_route(request.path):
            logger.info("Ignoring unusable access token on %s", request.path)
            return None
        return response

    @staticmethod
    def _get_user(user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        try:
            return User.objects.get(id=user_id)
        except (User.DoesNotExist, ValueError):
            return None


def is_session_recovery_route(path: str) -> bool:
    return path in {reverse(name) for name in SESSION_RECOVERY_ROUTES}


def get_access_token(request) -> str | None:
    """Extract the access token from the Authorization header or the ``token`` cookie."""
    auth_header = request.META.get("HTTP_AUTHORIZATION", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return request.COOKIES.get(ACCESS_COOKIE) or None


def _unauthorized(message: str) -> JsonResponse:
    return JsonResponse(
        {"success": False, "error": message},
        status=status.HTTP_401_UNAUTHORIZED,
    )


def _service_unavailable() -> JsonResponse:
    return JsonResponse(
        {"success": False, "error": "Authentication service unavailable (blocklist)."},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


__all__ = ["JWTAuthMiddleware", "get_access_token", "ACCESS_COOKIE"]
