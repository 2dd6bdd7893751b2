"""App configuration for the story content store."""

from django.apps import AppConfig


class StoriesConfig(AppConfig):
    """Stories, their moderation status and derived counters."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "stories"
