"""Story model with moderation status and derived reading/rating fields."""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class StoryStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


def default_cover_image() -> str:
    return settings.DEFAULT_COVER_IMAGE


class Story(models.Model):
    """A story owned by its author.

    ``slug`` never changes after creation. ``reading_time``, ``avg_rating``
    and ``comment_count`` are derived and written by ``stories.services`` and
    ``comments.services`` only.
    """

    title = models.CharField(max_length=100)
    slug = models.SlugField(max_length=120, unique=True)
    content = models.TextField()
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="stories")
    category = models.ForeignKey("categories.Category", on_delete=models.PROTECT, related_name="stories")
    tags = models.JSONField(default=list, blank=True)
    status = models.CharField(
        max_length=10, choices=StoryStatus.choices, default=StoryStatus.PENDING, db_index=True
    )
    cover_image = models.CharField(max_length=500, default=default_cover_image)
    cover_image_public_id = models.CharField(max_length=255, blank=True)
    reading_time = models.PositiveIntegerField(default=0)
    avg_rating = models.FloatField(
        default=0, validators=[MinValueValidator(0), MaxValueValidator(5)]
    )
    views = models.PositiveIntegerField(default=0)
    comment_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "stories"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.title


__all__ = ["Story", "StoryStatus", "default_cover_image"]
