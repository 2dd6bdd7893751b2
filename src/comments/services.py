"""Rating aggregation for stories, run after every comment write."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import DatabaseError
from django.db.models import Avg, Count

from core import cache
from stories.models import Story
from .models import Comment

logger = logging.getLogger(__name__)


def round_rating(value) -> float:
    """Round half-up to one decimal (4.25 -> 4.3); None means no ratings -> 0."""
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def recalculate_story_rating(story_id) -> None:
    """Recompute ``avg_rating`` and ``comment_count`` from one grouped aggregate.

    Concurrent writers race and the last aggregate wins. Errors are logged
    rather than raised so the comment write itself still succeeds.
    """
    try:
        stats = Comment.objects.filter(story_id=story_id).aggregate(
            avg_rating=Avg("rating"), total=Count("id")
        )
        Story.objects.filter(pk=story_id).update(
            avg_rating=round_rating(stats["avg_rating"]),
            comment_count=stats["total"] or 0,
        )
    except DatabaseError:
        logger.exception("Error recalculating average rating for story %s", story_id)
        return
    cache.invalidate(cache.STORY_LIST)


def add_comment(story: Story, author, text: str, rating: int) -> Comment:
    comment = Comment.objects.create(story=story, author=author, text=text, rating=rating)
    recalculate_story_rating(story.pk)
    return comment


def delete_comment(comment: Comment) -> None:
    story_id = comment.story_id
    comment.delete()
    recalculate_story_rating(story_id)


__all__ = ["round_rating", "recalculate_story_rating", "add_comment", "delete_comment"]
