"""App configuration for the core project utilities."""

import atexit

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Core app holds shared settings, URLs, and middleware."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "core"

    def ready(self) -> None:
        """Close the shared Redis connection pool when the process exits."""
        from .redis_client import close_redis_client

        atexit.register(close_redis_client)
