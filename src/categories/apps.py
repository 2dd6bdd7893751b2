"""App configuration for the category directory."""

from django.apps import AppConfig


class CategoriesConfig(AppConfig):
    """Named categories stories are filed under."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "categories"
