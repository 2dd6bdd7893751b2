"""Comment model: text plus a 1-5 rating on a story."""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Comment(models.Model):
    text = models.TextField()
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="comments")
    story = models.ForeignKey("stories.Story", on_delete=models.CASCADE, related_name="comments")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(rating__gte=1) & models.Q(rating__lte=5),
                name="comment_rating_between_1_and_5",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.author_id} on {self.story_id}: {self.rating}"


__all__ = ["Comment"]
