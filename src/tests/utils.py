"""Shared helpers for tests (users, stories, fake Redis, patched test case)."""

from __future__ import annotations

from typing import Dict
from unittest import mock

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from rest_framework.test import APIClient

from access_control.roles import Role
from authentication.managers import UserManager
from authentication.models import User
from authentication.services import TokenService
from categories.models import Category
from core.slugs import unique_slug
from stories.models import Story, StoryStatus
from stories.services import compute_reading_time

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
    b"\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00"
    b"\x00\x00\x00IEND\xaeB`\x82"
)


class FakeRedis:
    """Minimal Redis stub supporting the commands used by TokenService."""

    def __init__(self):
        self._store: Dict[str, str] = {}

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        """Mimic Redis SETEX; TTL is ignored in tests, value stored in-memory."""
        self._store[key] = value

    def get(self, key: str):
        """Return stored value for key or None, matching Redis GET semantics."""
        return self._store.get(key)


class StoryNestTestCase(TestCase):
    """TestCase with the blocklist on an in-memory fake and a clean cache per test."""

    @classmethod
    def setUpClass(cls):
        """Patch Redis clients to use in-memory fake for all tests."""
        super().setUpClass()
        cls.fake_redis = FakeRedis()
        cls.patchers = [
            mock.patch("core.redis_client.get_redis_client", return_value=cls.fake_redis),
            mock.patch("authentication.services.get_redis_client", return_value=cls.fake_redis),
        ]
        for patcher in cls.patchers:
            patcher.start()

    @classmethod
    def tearDownClass(cls):
        """Stop Redis patches after all tests complete."""
        for patcher in cls.patchers:
            patcher.stop()
        super().tearDownClass()

    def setUp(self):
        """Fresh DRF APIClient and an empty response cache per test."""
        cache.clear()
        self.api_client: APIClient = APIClient()


def create_user(
    email: str,
    password: str = "StrongPass123",
    role: str = Role.USER,
    username: str | None = None,
    **extra,
) -> User:
    """Create a verified user with a bcrypt-hashed password for tests."""

    extra.setdefault("is_verified", True)
    return User.objects.create(
        email=email,
        username=username or email.split("@")[0],
        password_hash=UserManager.hash_password(password),
        role=role,
        **extra,
    )


def auth_client(user) -> APIClient:
    """Return an APIClient authenticated with a fresh access token."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {TokenService.generate_access_token(user)}")
    return client


def create_category(name: str = "Fiction") -> Category:
    return Category.objects.create(name=name, slug=unique_slug(Category, name))


def create_story(
    author,
    category,
    title: str = "A Story",
    content: str = "Once upon a time",
    status: str = StoryStatus.APPROVED,
    **extra,
) -> Story:
    """Insert a story directly, bypassing the moderation workflow."""
    return Story.objects.create(
        author=author,
        category=category,
        title=title,
        slug=unique_slug(Story, title),
        content=content,
        reading_time=compute_reading_time(content),
        status=status,
        **extra,
    )


def png_upload(name: str = "cover.png") -> SimpleUploadedFile:
    return SimpleUploadedFile(name, PNG_BYTES, content_type="image/png")
