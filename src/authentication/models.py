"""Custom User model with bcrypt passwords, role, and hashed token state.

Every credential the server hands out (refresh token, email verification and
password reset links) is stored only as a SHA-256 digest together with its
expiry.
"""

import uuid
from typing import ClassVar, Optional

from django.contrib.auth.models import AbstractBaseUser
from django.db import models
from django.db.models import Q

from access_control.roles import Role

from .managers import UserManager


class User(AbstractBaseUser):
    """Account identified by email; ``password_hash`` is empty for OAuth-only users."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = models.CharField(max_length=30, unique=True)
    email = models.EmailField(unique=True)
    password_hash = models.CharField(max_length=128, null=True, blank=True)
    # Credentials live in password_hash; the inherited column is not used.
    password = None
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER)
    is_verified = models.BooleanField(default=False)

    verification_token = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    verification_token_expires = models.DateTimeField(null=True, blank=True)
    reset_password_token = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    reset_password_expires = models.DateTimeField(null=True, blank=True)
    refresh_token_hash = models.CharField(max_length=64, null=True, blank=True, unique=True)
    refresh_token_expires = models.DateTimeField(null=True, blank=True)

    google_id = models.CharField(max_length=255, null=True, blank=True, unique=True)
    avatar = models.CharField(max_length=500, blank=True)
    avatar_public_id = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    EMAIL_FIELD = "email"
    REQUIRED_FIELDS: ClassVar[list[str]] = ["username"]

    objects = UserManager()

    class Meta:
        """Newest users first; a single super-admin at most."""
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["role"],
                condition=Q(role=Role.SUPER_ADMIN),
                name="single_super_admin",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.email

    @property
    def has_usable_credentials(self) -> bool:
        return bool(self.password_hash)

    def set_password(self, raw_password: Optional[str]) -> None:  # type: ignore[override]
        """Override to ensure bcrypt hashing via manager utility."""

        if raw_password is None:
            self.password_hash = None
        else:
            self.password_hash = UserManager.hash_password(raw_password)

    def check_password(self, raw_password: Optional[str]) -> bool:  # type: ignore[override]
        """Delegate to bcrypt verification helper."""

        if raw_password is None:
            return False
        return UserManager.verify_password(self, raw_password)


__all__ = ["User"]
