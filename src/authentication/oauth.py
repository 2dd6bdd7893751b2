"""Google sign-in: ID token verification and account linking."""

import logging
import re
import secrets
from dataclasses import dataclass

from django.conf import settings
from django.db import transaction
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from .models import User

logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH = 30


class InvalidGoogleToken(Exception):
    """The ID token could not be verified or lacks the claims we need."""


@dataclass(frozen=True)
class GoogleIdentity:
    google_id: str
    email: str
    name: str


def verify_google_token(token: str) -> GoogleIdentity:
    """Check signature, expiry and audience of a Google ID token."""

    if not settings.GOOGLE_CLIENT_ID:
        raise InvalidGoogleToken("GOOGLE_CLIENT_ID is not configured")
    try:
        claims = id_token.verify_oauth2_token(
            token, google_requests.Request(), audience=settings.GOOGLE_CLIENT_ID
        )
    except (ValueError, google_exceptions.GoogleAuthError) as exc:
        logger.warning("Rejected Google ID token: %s", exc)
        raise InvalidGoogleToken(str(exc)) from exc

    google_id = claims.get("sub")
    email = claims.get("email")
    if not google_id or not email:
        raise InvalidGoogleToken("Google token is missing sub or email")
    return GoogleIdentity(google_id=google_id, email=email.lower(), name=claims.get("name") or "")


def unique_username(seed: str) -> str:
    """Derive an unused username (max 30 chars) from a display name or email."""

    base = re.sub(r"\s+", "", seed)[:USERNAME_MAX_LENGTH] or "storyteller"
    candidate = base
    while User.objects.filter(username__iexact=candidate).exists():
        suffix = secrets.token_hex(3)
        candidate = f"{base[: USERNAME_MAX_LENGTH - len(suffix)]}{suffix}"
    return candidate


@transaction.atomic
def get_or_create_google_user(identity: GoogleIdentity) -> User:
    """Find the account by Google id, else link it by email, else create a verified one."""

    user = User.objects.filter(google_id=identity.google_id).first()
    if user is not None:
        return user

    user = User.objects.filter(email__iexact=identity.email).first()
    if user is not None:
        user.google_id = identity.google_id
        user.save(update_fields=["google_id", "updated_at"])
        logger.info("Linked Google account to user %s", user.pk)
        return user

    username = unique_username(identity.name or identity.email.split("@")[0])
    user = User.objects.create_user(
        email=identity.email,
        username=username,
        password=None,
        google_id=identity.google_id,
        is_verified=True,
    )
    logger.info("Created user %s from Google sign-in", user.pk)
    return user


__all__ = [
    "InvalidGoogleToken",
    "GoogleIdentity",
    "verify_google_token",
    "unique_username",
    "get_or_create_google_user",
]
