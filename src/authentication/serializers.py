"""Serializers for authentication flows (register, login, profile)."""

from typing import cast

from django.contrib.auth import get_user_model
from rest_framework import serializers

from core.images import UnsupportedImage, check_image
from .managers import UserManager

User = get_user_model()

MISSING_CREDENTIALS = "Please provide an email and password"


class RegisterSerializer(serializers.Serializer):
    """Validate and create an unverified account with the default 'user' role."""

    username = serializers.CharField(
        max_length=30,
        error_messages={
            "required": "Username is required",
            "blank": "Username is required",
            "max_length": "Username cannot be more than 30 characters",
        },
    )
    email = serializers.EmailField(
        error_messages={
            "required": "Please include a valid email",
            "invalid": "Please include a valid email",
        },
    )
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        trim_whitespace=False,
        error_messages={
            "required": "Please enter a password with 8 or more characters",
            "min_length": "Please enter a password with 8 or more characters",
        },
    )

    @staticmethod
    def validate_username(value):
        """Ensure username is unique before creation."""
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("Username already in use")
        return value

    @staticmethod
    def validate_email(value):
        """Ensure email is unique before creation."""
        value = value.lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already in use")
        return value

    def create(self, validated_data):
        """Create a user with the default 'user' role and hashed password."""
        manager = cast(UserManager, User.objects)
        return manager.create_user(**validated_data)


class LoginSerializer(serializers.Serializer):
    """Email/password pair; credential checks happen in the view."""

    email = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate(self, attrs):
        if not attrs.get("email") or not attrs.get("password"):
            raise serializers.ValidationError(MISSING_CREDENTIALS)
        attrs["email"] = attrs["email"].strip().lower()
        return attrs


class GoogleLoginSerializer(serializers.Serializer):
    token = serializers.CharField(
        error_messages={"required": "Invalid Google token", "blank": "Invalid Google token"},
    )


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField(
        error_messages={
            "required": "Please include a valid email",
            "invalid": "Please include a valid email",
        },
    )


class ResetPasswordSerializer(serializers.Serializer):
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        trim_whitespace=False,
        error_messages={
            "required": "Please enter a password with 8 or more characters",
            "min_length": "Please enter a password with 8 or more characters",
        },
    )


class AuthorSerializer(serializers.ModelSerializer):
    """Public identity shown next to stories and comments."""

    class Meta:
        model = User
        fields = ["id", "username", "avatar"]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """Read-only user profile payload for responses."""

    isVerified = serializers.BooleanField(source="is_verified", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        """Expose identity fields and role; credentials and token state never leave the server."""
        model = User
        fields = [
            "id",
            "username",
            "email",
            "role",
            "isVerified",
            "avatar",
            "createdAt",
        ]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Patchable fields for /auth/me updates."""

    class Meta:
        """Only the username can be changed here."""
        model = User
        fields = ["username"]
        extra_kwargs = {
            "username": {
                "required": False,
                "max_length": 30,
                "validators": [],
                "error_messages": {"blank": "Username is required"},
            },
        }

    def validate_username(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Username is required")
        taken = User.objects.filter(username__iexact=value).exclude(pk=self.instance.pk)
        if taken.exists():
            raise serializers.ValidationError("Username already in use")
        return value

    def validate(self, attrs):
        """Disallow attempts to change email, role or password via this endpoint.

        Payloads carrying those keys are rejected rather than silently ignored,
        to make the restriction explicit to API consumers.
        """
        initial = getattr(self, "initial_data", {})
        for field in ("email", "role", "password"):
            if field in initial:
                raise serializers.ValidationError(f"{field.capitalize()} cannot be updated via this endpoint")
        return super().validate(attrs)


class AvatarSerializer(serializers.Serializer):
    avatar = serializers.FileField(
        error_messages={"required": "Please upload an image file", "invalid": "Please upload an image file"},
    )

    def validate_avatar(self, value):
        try:
            check_image(value)
        except UnsupportedImage as exc:
            raise serializers.ValidationError(str(exc)) from exc
        return value


__all__ = [
    "RegisterSerializer",
    "LoginSerializer",
    "GoogleLoginSerializer",
    "ForgotPasswordSerializer",
    "ResetPasswordSerializer",
    "AuthorSerializer",
    "UserDetailSerializer",
    "ProfileUpdateSerializer",
    "AvatarSerializer",
]
