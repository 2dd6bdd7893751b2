"""Authentication endpoints: registration, sessions, profile and user administration."""

import logging
from typing import Any

from django.conf import settings
from django.db import transaction
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed, NotFound, ValidationError
from rest_framework.generics import get_object_or_404
from rest_framework.response import Response

from access_control.permissions import IsAuthenticatedUser, allow_roles
from access_control.policies import ensure_can_delete, ensure_can_demote, ensure_can_promote
from access_control.roles import Role
from comments.models import Comment
from comments.services import recalculate_story_rating
from core import cache
from core.images import AVATARS_FOLDER, get_image_host, release_image
from core.middleware import ACCESS_COOKIE
from core.response import BaseAPIView, api_response
from . import emails
from .models import User
from .oauth import InvalidGoogleToken, get_or_create_google_user, verify_google_token
from .serializers import (
    AvatarSerializer,
    ForgotPasswordSerializer,
    GoogleLoginSerializer,
    LoginSerializer,
    ProfileUpdateSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
    UserDetailSerializer,
)
from .services import BlocklistUnavailable, OneTimeTokenService, TokenService

logger = logging.getLogger(__name__)

REFRESH_COOKIE = "refreshToken"


def _set_access_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        token,
        max_age=int(TokenService.access_ttl().total_seconds()),
        httponly=True,
        secure=not settings.DEBUG,
        samesite="Lax",
    )


def _set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        REFRESH_COOKIE,
        token,
        max_age=int(TokenService.refresh_ttl().total_seconds()),
        httponly=True,
        secure=not settings.DEBUG,
        samesite="Strict",
    )


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE, samesite="Lax")
    response.delete_cookie(REFRESH_COOKIE, samesite="Strict")


def _session_response(user, *, with_refresh: bool, http_status: int = status.HTTP_200_OK) -> Response:
    """Profile + fresh access token; optionally a new refresh token cookie."""
    access = TokenService.generate_access_token(user)
    response = api_response(UserDetailSerializer(user).data, status=http_status, token=access)
    _set_access_cookie(response, access)
    if with_refresh:
        _set_refresh_cookie(response, TokenService.issue_refresh_token(user))
    return response


def _error_response(message: str, http_status: int) -> Response:
    return Response({"success": False, "error": message}, status=http_status)


def _delete_account(user) -> None:
    """Remove ``user`` with their stories and comments, then tidy up what lives elsewhere.

    Ratings of other authors' stories the user commented on are recomputed and
    the hosted avatar and covers are released.
    """
    rated_story_ids = set(
        Comment.objects.filter(author=user).exclude(story__author=user).values_list("story_id", flat=True)
    )
    image_ids = [user.avatar_public_id, *user.stories.values_list("cover_image_public_id", flat=True)]
    with transaction.atomic():
        user.delete()
    for story_id in rated_story_ids:
        recalculate_story_rating(story_id)
    for public_id in image_ids:
        release_image(public_id)
    cache.invalidate(cache.STORY_LIST)


class RegisterView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        """Create an unverified account and email its verification link."""
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        token = OneTimeTokenService.issue(user, OneTimeTokenService.VERIFICATION)
        try:
            emails.send_verification_email(user, token)
        except OSError:
            # Drop the account so the same email/username can register again.
            logger.exception("Verification email failed for %s; removing account", user.email)
            user.delete()
            return _error_response(
                "Registration failed, please try again.", status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        logger.info("Registered user %s", user.pk)
        return api_response(
            "Registration successful. Please check your email to verify your account.",
            status=status.HTTP_201_CREATED,
        )


class VerifyEmailView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def put(self, request, token):
        """Mark the account verified and sign the user in."""
        user = OneTimeTokenService.consume(token, OneTimeTokenService.VERIFICATION)
        if user is None:
            raise ValidationError("Invalid or expired verification token.")
        user.is_verified = True
        user.save(update_fields=["is_verified", "updated_at"])
        return _session_response(user, with_refresh=False)


class LoginView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        """Authenticate and issue an access token plus a refresh cookie."""
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data["email"]
        password = serializer.validated_data["password"]

        user = User.objects.filter(email__iexact=email).first()
        if user is None or not user.check_password(password):
            raise AuthenticationFailed("Invalid credentials")
        if not user.is_verified:
            raise AuthenticationFailed("Please verify your email address before logging in.")
        return _session_response(user, with_refresh=True)


class GoogleLoginView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        """Sign in with a Google ID token, creating or linking the account."""
        serializer = GoogleLoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            identity = verify_google_token(serializer.validated_data["token"])
        except InvalidGoogleToken:
            raise ValidationError("Invalid Google token")
        user = get_or_create_google_user(identity)
        return _session_response(user, with_refresh=True)


class RefreshView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        """Exchange the refresh cookie for a new access token."""
        refresh_token = request.COOKIES.get(REFRESH_COOKIE)
        if not refresh_token:
            raise AuthenticationFailed("Not authorized, no token")

        user = TokenService.find_user_by_refresh_token(refresh_token)
        if user is None:
            response = _error_response("Forbidden, invalid refresh token", status.HTTP_403_FORBIDDEN)
            response.delete_cookie(REFRESH_COOKIE, samesite="Strict")
            return response

        access = TokenService.generate_access_token(user)
        response = api_response(UserDetailSerializer(user).data, token=access)
        _set_access_cookie(response, access)
        return response


class LogoutView(BaseAPIView):
    """End the session: blocklist the access token, revoke the refresh token, clear cookies."""

    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        payload = getattr(request, "auth", None) or {}
        if payload.get("jti"):
            try:
                TokenService.block_token(payload["jti"], payload["exp"])
            except BlocklistUnavailable:
                logger.error("Could not blocklist access token %s on logout", payload["jti"])

        user = request.user if request.user.is_authenticated else None
        if user is None:
            user = TokenService.find_user_by_refresh_token(request.COOKIES.get(REFRESH_COOKIE, ""))
        if user is not None:
            TokenService.revoke_refresh_token(user)

        response = api_response({})
        _clear_session_cookies(response)
        return response


class ForgotPasswordView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        """Email a short-lived password reset link."""
        serializer = ForgotPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = User.objects.filter(email__iexact=serializer.validated_data["email"]).first()
        if user is None:
            raise NotFound("No user with that email")

        token = OneTimeTokenService.issue(user, OneTimeTokenService.RESET)
        try:
            emails.send_password_reset_email(user, token)
        except OSError:
            logger.exception("Password reset email failed for %s", user.email)
            OneTimeTokenService.clear(user, OneTimeTokenService.RESET)
            return _error_response("Email could not be sent", status.HTTP_500_INTERNAL_SERVER_ERROR)
        return api_response("Email sent")


class ResetPasswordView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def put(self, request, token):
        """Set a new password with a reset token; existing refresh tokens stop working."""
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = OneTimeTokenService.consume(token, OneTimeTokenService.RESET)
        if user is None:
            raise ValidationError("Invalid token")
        user.set_password(serializer.validated_data["password"])
        user.save(update_fields=["password_hash", "updated_at"])
        TokenService.revoke_refresh_token(user)
        return _session_response(user, with_refresh=False)


class MeView(BaseAPIView):
    permission_classes = [IsAuthenticatedUser]

    # noinspection PyMethodMayBeStatic
    def get(self, request):
        """Return the current user's profile."""
        return api_response(UserDetailSerializer(request.user).data)

    # noinspection PyMethodMayBeStatic
    def patch(self, request):
        """Change the current user's username."""
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        cache.invalidate(cache.STORY_LIST)
        return api_response(UserDetailSerializer(request.user).data)


class AvatarView(BaseAPIView):
    permission_classes = [IsAuthenticatedUser]

    # noinspection PyMethodMayBeStatic
    def put(self, request):
        """Upload a new avatar image and release the previous one."""
        serializer = AvatarSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        hosted = get_image_host().upload(serializer.validated_data["avatar"], AVATARS_FOLDER)

        user = request.user
        previous = user.avatar_public_id
        user.avatar = hosted.url
        user.avatar_public_id = hosted.public_id
        user.save(update_fields=["avatar", "avatar_public_id", "updated_at"])
        release_image(previous)
        cache.invalidate(cache.STORY_LIST)
        return api_response(UserDetailSerializer(user).data)


class UserListView(BaseAPIView):
    permission_classes = [allow_roles(Role.ADMIN)]

    # noinspection PyMethodMayBeStatic
    def get(self, request):
        users = User.objects.order_by("-created_at")
        data = UserDetailSerializer(users, many=True).data
        return api_response(data, count=len(data))


class PromoteUserView(BaseAPIView):
    permission_classes = [allow_roles()]

    # noinspection PyMethodMayBeStatic
    def put(self, request, pk):
        """Make a regular user an admin."""
        target = get_object_or_404(User, pk=pk)
        ensure_can_promote(request.user, target)
        target.role = Role.ADMIN
        target.save(update_fields=["role", "updated_at"])
        logger.info("User %s promoted to admin by %s", target.pk, request.user.pk)
        return api_response(UserDetailSerializer(target).data)


class DemoteUserView(BaseAPIView):
    permission_classes = [allow_roles()]

    # noinspection PyMethodMayBeStatic
    def put(self, request, pk):
        """Turn an admin back into a regular user."""
        target = get_object_or_404(User, pk=pk)
        ensure_can_demote(request.user, target)
        target.role = Role.USER
        target.save(update_fields=["role", "updated_at"])
        logger.info("User %s demoted to user by %s", target.pk, request.user.pk)
        return api_response(UserDetailSerializer(target).data)


class UserDetailView(BaseAPIView):
    permission_classes = [allow_roles(Role.ADMIN)]

    # noinspection PyMethodMayBeStatic
    def delete(self, request, pk):
        """Delete an account with its stories and comments, then release its avatar."""
        target = get_object_or_404(User, pk=pk)
        ensure_can_delete(request.user, target)
        _delete_account(target)
        logger.info("User %s deleted by %s", pk, request.user.pk)
        return api_response({})


__all__ = [
    "RegisterView",
    "VerifyEmailView",
    "LoginView",
    "GoogleLoginView",
    "RefreshView",
    "LogoutView",
    "ForgotPasswordView",
    "ResetPasswordView",
    "MeView",
    "AvatarView",
    "UserListView",
    "PromoteUserView",
    "DemoteUserView",
    "UserDetailView",
]
