"""Role hierarchy for StoryNest accounts."""

from django.db import models


class Role(models.TextChoices):
    """Account roles, lowest privilege first."""

    USER = "user", "User"
    ADMIN = "admin", "Admin"
    SUPER_ADMIN = "super-admin", "Super admin"

    @property
    def rank(self) -> int:
        return _RANKS[self.value]


_RANKS = {Role.USER.value: 0, Role.ADMIN.value: 1, Role.SUPER_ADMIN.value: 2}


def role_of(user) -> str | None:
    """Return the role string of an authenticated user, or None."""
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return getattr(user, "role", None)


def is_staff_member(user) -> bool:
    """Admins and the super-admin."""
    return role_of(user) in (Role.ADMIN, Role.SUPER_ADMIN)


__all__ = ["Role", "role_of", "is_staff_member"]
