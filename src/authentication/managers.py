"""Custom user manager handling bcrypt hashing and verification."""

import uuid

import bcrypt
from django.conf import settings
from django.contrib.auth.base_user import BaseUserManager


class UserManager(BaseUserManager):
    """Manager to create users with bcrypt password hashes."""

    use_in_migrations = True

    def _create_user(self, email: str, username: str, password: str | None, **extra_fields):
        if not email:
            raise ValueError("The Email must be set")
        if not username:
            raise ValueError("The Username must be set")
        email = self.normalize_email(email)
        user = self.model(id=uuid.uuid4(), email=email, username=username.strip(), **extra_fields)
        user.password_hash = self.hash_password(password) if password else None
        user.save(using=self._db)
        return user

    def create_user(self, email: str, username: str, password: str | None = None, **extra_fields):
        """Create a regular account; OAuth-only accounts pass ``password=None``."""
        extra_fields.setdefault("role", "user")
        return self._create_user(email, username, password, **extra_fields)

    def create_superuser(self, email: str, username: str, password: str, **extra_fields):
        """Create the (single) super-admin account, already verified."""
        extra_fields["role"] = "super-admin"
        extra_fields.setdefault("is_verified", True)
        if password is None:
            raise ValueError("Password must be provided")
        return self._create_user(email, username, password, **extra_fields)

    @staticmethod
    def hash_password(raw_password: str) -> str:
        """Hash a raw password using bcrypt and return the utf-8 string."""
        # bcrypt only looks at the first 72 bytes.
        salt = bcrypt.gensalt(rounds=getattr(settings, "BCRYPT_ROUNDS", 12))
        hashed = bcrypt.hashpw(raw_password.encode()[:72], salt)
        return hashed.decode()

    @staticmethod
    def verify_password(user, raw_password: str) -> bool:
        """Verify raw password against stored bcrypt hash."""

        if not user.password_hash:
            return False
        try:
            return bcrypt.checkpw(raw_password.encode()[:72], user.password_hash.encode("utf-8"))
        except ValueError:
            return False


__all__ = ["UserManager"]
