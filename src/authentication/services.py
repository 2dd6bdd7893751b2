"""Token services: access JWTs, hashed refresh tokens, one-time email tokens."""

import hashlib
import logging
import secrets
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from django.conf import settings
from django.utils import timezone as dj_timezone
from rest_framework.exceptions import AuthenticationFailed

from core.redis_client import get_redis_client

logger = logging.getLogger(__name__)


class BlocklistUnavailable(Exception):
    """Raised when Redis blocklist cannot be checked (fail-closed)."""


class TokenExpired(AuthenticationFailed):
    default_detail = "Token expired."
    default_code = "token_expired"


class TokenInvalid(AuthenticationFailed):
    default_detail = "Invalid token."
    default_code = "token_invalid"


def hash_token(token: str) -> str:
    """SHA-256 hex digest used to store server-issued random tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenService:
    """Handle access JWT issuance/decoding, refresh tokens and the blocklist."""

    ALGORITHM = "HS256"
    BLOCKLIST_PREFIX = "blocklist:token:"
    REFRESH_TOKEN_BYTES = 32

    @classmethod
    def access_ttl(cls) -> timedelta:
        return timedelta(minutes=settings.JWT_ACCESS_TTL_MINUTES)

    @classmethod
    def refresh_ttl(cls) -> timedelta:
        return timedelta(days=settings.JWT_REFRESH_TTL_DAYS)

    @classmethod
    def generate_access_token(cls, user) -> str:
        """Sign a short-lived access token carrying the user id and role."""

        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": str(user.id),
            "role": user.role,
            "jti": str(uuid.uuid4()),
            "iat": int(now.timestamp()),
            "exp": int((now + cls.access_ttl()).timestamp()),
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=cls.ALGORITHM)

    @classmethod
    def decode_access_token(cls, token: str) -> dict[str, Any]:
        """Verify signature and expiry; raise TokenExpired or TokenInvalid."""

        try:
            return jwt.decode(token, settings.JWT_SECRET, algorithms=[cls.ALGORITHM])
        except jwt.ExpiredSignatureError as exc:
            logger.info("Token expired. Client should refresh.")
            raise TokenExpired() from exc
        except jwt.InvalidTokenError as exc:
            logger.warning("Invalid token received: %s", exc)
            raise TokenInvalid() from exc

    @classmethod
    def issue_refresh_token(cls, user) -> str:
        """Create a refresh token, persist only its digest, return the plaintext once."""

        token = secrets.token_hex(cls.REFRESH_TOKEN_BYTES)
        user.refresh_token_hash = hash_token(token)
        user.refresh_token_expires = dj_timezone.now() + cls.refresh_ttl()
        user.save(update_fields=["refresh_token_hash", "refresh_token_expires", "updated_at"])
        return token

    @classmethod
    def find_user_by_refresh_token(cls, token: str):
        """Return the owner of an unexpired refresh token, or None."""

        from .models import User

        if not token:
            return None
        user = User.objects.filter(refresh_token_hash=hash_token(token)).first()
        if user is None:
            return None
        if user.refresh_token_expires is None or user.refresh_token_expires <= dj_timezone.now():
            return None
        return user

    @classmethod
    def revoke_refresh_token(cls, user) -> None:
        user.refresh_token_hash = None
        user.refresh_token_expires = None
        user.save(update_fields=["refresh_token_hash", "refresh_token_expires", "updated_at"])

    @classmethod
    def block_token(cls, jti: str, exp: int) -> None:
        """Add token jti to blocklist until its expiration timestamp."""

        client = get_redis_client()
        ttl_seconds = max(1, exp - int(time.time()))
        try:
            client.setex(f"{cls.BLOCKLIST_PREFIX}{jti}", ttl_seconds, "1")
        except Exception as exc:  # pragma: no cover - network failure
            raise BlocklistUnavailable("Redis unavailable while blocklisting") from exc

    @classmethod
    def is_token_blocked(cls, jti: str) -> bool:
        """Check if a token jti is present in the blocklist."""

        client = get_redis_client()
        try:
            return client.get(f"{cls.BLOCKLIST_PREFIX}{jti}") is not None
        except Exception as exc:  # pragma: no cover - network failure
            raise BlocklistUnavailable("Redis unavailable while checking blocklist") from exc


class OneTimeTokenService:
    """Email verification and password reset tokens.

    The plaintext goes into the emailed link; the user row keeps the SHA-256
    digest and an expiry. Consuming a token clears both fields.
    """

    TOKEN_BYTES = 20
    VERIFICATION = "verification"
    RESET = "reset"

    _FIELDS = {
        VERIFICATION: ("verification_token", "verification_token_expires", timedelta(hours=24)),
        RESET: ("reset_password_token", "reset_password_expires", timedelta(minutes=10)),
    }

    @classmethod
    def issue(cls, user, purpose: str) -> str:
        token_field, expires_field, ttl = cls._FIELDS[purpose]
        token = secrets.token_hex(cls.TOKEN_BYTES)
        setattr(user, token_field, hash_token(token))
        setattr(user, expires_field, dj_timezone.now() + ttl)
        user.save(update_fields=[token_field, expires_field, "updated_at"])
        return token

    @classmethod
    def clear(cls, user, purpose: str) -> None:
        token_field, expires_field, _ = cls._FIELDS[purpose]
        setattr(user, token_field, None)
        setattr(user, expires_field, None)
        user.save(update_fields=[token_field, expires_field, "updated_at"])

    @classmethod
    def consume(cls, token: str, purpose: str):
        """Return the user whose unexpired token matches ``token`` and clear it, else None."""

        from .models import User

        token_field, expires_field, _ = cls._FIELDS[purpose]
        user = User.objects.filter(
            **{token_field: hash_token(token), f"{expires_field}__gt": dj_timezone.now()}
        ).first()
        if user is None:
            return None
        cls.clear(user, purpose)
        return user


__all__ = [
    "TokenService",
    "OneTimeTokenService",
    "BlocklistUnavailable",
    "TokenExpired",
    "TokenInvalid",
    "hash_token",
]
