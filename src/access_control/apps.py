"""App configuration for roles, role gates and moderation policies."""

from django.apps import AppConfig


class AccessControlConfig(AppConfig):
    """Holds no models; registers the role-map system checks on startup."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "access_control"

    def ready(self) -> None:
        from . import checks  # noqa: F401
