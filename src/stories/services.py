"""Story lifecycle: creation, edits, moderation, visibility and view counting."""

import json
import logging
import math
import re

from django.db import DatabaseError, connection, transaction
from django.db.models import F, Q, QuerySet

from access_control.roles import is_staff_member, role_of
from core import cache
from core.images import COVERS_FOLDER, get_image_host, release_image
from core.slugs import unique_slug
from .models import Story, StoryStatus

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200

# Wire name -> model field, for ?sort= and range filters.
SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "views": "views",
    "avgRating": "avg_rating",
    "readingTime": "reading_time",
    "commentCount": "comment_count",
}
RANGE_FIELDS = {
    "views": "views",
    "avgRating": "avg_rating",
    "readingTime": "reading_time",
    "commentCount": "comment_count",
}
RANGE_PARAM = re.compile(r"^(?P<field>\w+)\[(?P<op>gte|gt|lte|lt)\]$")
DEFAULT_SORT = "-created_at"


def compute_reading_time(content: str) -> int:
    """Minutes needed to read ``content`` at 200 words per minute, rounded up."""
    words = len((content or "").split())
    return math.ceil(words / WORDS_PER_MINUTE)


def can_view(user, story: Story) -> bool:
    """Approved stories are public; authors and staff also see the rest."""
    if story.status == StoryStatus.APPROVED:
        return True
    if role_of(user) is None:
        return False
    return story.author_id == user.pk or is_staff_member(user)


def visible_stories(user) -> QuerySet:
    """Stories ``user`` may fetch one by one."""
    queryset = Story.objects.select_related("author", "category")
    if is_staff_member(user):
        return queryset
    if role_of(user) is None:
        return queryset.filter(status=StoryStatus.APPROVED)
    return queryset.filter(Q(status=StoryStatus.APPROVED) | Q(author=user))


def listable_stories(user, status: str | None = None) -> QuerySet:
    """Stories shown in listings: approved only, unless staff asks otherwise."""
    queryset = Story.objects.select_related("author", "category")
    if is_staff_member(user):
        return queryset.filter(status=status) if status else queryset
    return queryset.filter(status=StoryStatus.APPROVED)


def apply_filters(queryset: QuerySet, params) -> QuerySet:
    """Free-text search, category/tag/author filters and numeric ranges."""
    search = (params.get("search") or "").strip()
    if search:
        queryset = queryset.filter(Q(title__icontains=search) | Q(content__icontains=search))

    category = (params.get("category") or "").strip()
    if category:
        if category.isdigit():
            queryset = queryset.filter(category_id=int(category))
        else:
            queryset = queryset.filter(category__slug=category)

    tag = (params.get("tag") or "").strip()
    if tag:
        queryset = filter_by_tag(queryset, tag)

    author = (params.get("author") or "").strip()
    if author:
        queryset = queryset.filter(author__username=author)

    for key in params.keys():
        match = RANGE_PARAM.match(key)
        if not match or match.group("field") not in RANGE_FIELDS:
            continue
        try:
            value = float(params.get(key))
        except (TypeError, ValueError):
            continue
        lookup = f"{RANGE_FIELDS[match.group('field')]}__{match.group('op')}"
        queryset = queryset.filter(**{lookup: value})
    return queryset


def filter_by_tag(queryset: QuerySet, tag: str) -> QuerySet:
    """Stories whose tag list holds ``tag`` as a whole element."""
    if connection.features.supports_json_field_contains:
        return queryset.filter(tags__contains=[tag])
    # SQLite: match the element as the JSON column serializes it (non-ASCII
    # characters are stored as \uXXXX escapes).
    return queryset.filter(tags__icontains=json.dumps(tag))


def parse_sort(raw: str | None) -> list[str]:
    """Translate ``?sort=-views,title`` into model ordering; unknown names are ignored."""
    ordering = []
    for item in (raw or "").split(","):
        item = item.strip()
        if not item:
            continue
        descending = item.startswith("-")
        field = SORTABLE_FIELDS.get(item.lstrip("-"))
        if field:
            ordering.append(f"-{field}" if descending else field)
    return ordering or [DEFAULT_SORT]


def _upload_cover(cover):
    if cover is None:
        return None
    return get_image_host().upload(cover, COVERS_FOLDER)


def create_story(author, data: dict, cover=None) -> Story:
    """Persist a new pending story with its slug and reading time."""
    hosted = _upload_cover(cover)
    story = Story(
        author=author,
        title=data["title"],
        content=data["content"],
        category=data["category"],
        tags=data.get("tags", []),
        status=StoryStatus.PENDING,
    )
    story.slug = unique_slug(Story, story.title)
    story.reading_time = compute_reading_time(story.content)
    if hosted:
        story.cover_image = hosted.url
        story.cover_image_public_id = hosted.public_id
    try:
        story.save()
    except Exception:
        if hosted:
            release_image(hosted.public_id)
        raise
    cache.invalidate(cache.STORY_LIST)
    logger.info("Story %s created by %s", story.slug, author.pk)
    return story


def update_story(story: Story, data: dict, cover=None) -> Story:
    """Apply an author edit: any change sends the story back to moderation."""
    hosted = _upload_cover(cover)
    for field in ("title", "content", "category", "tags"):
        if field in data:
            setattr(story, field, data[field])
    story.reading_time = compute_reading_time(story.content)
    story.status = StoryStatus.PENDING
    old_public_id = None
    if hosted:
        old_public_id = story.cover_image_public_id
        story.cover_image = hosted.url
        story.cover_image_public_id = hosted.public_id
    try:
        story.save()
    except Exception:
        if hosted:
            release_image(hosted.public_id)
        raise
    release_image(old_public_id)
    cache.invalidate(cache.STORY_LIST)
    return story


def delete_story(story: Story) -> None:
    """Delete a story (and its comments), then release its hosted cover."""
    public_id = story.cover_image_public_id
    with transaction.atomic():
        story.delete()
    release_image(public_id)
    cache.invalidate(cache.STORY_LIST)
    logger.info("Story %s deleted", story.slug)


def set_status(story: Story, status: str) -> Story:
    """Moderation decision by staff."""
    story.status = status
    story.save(update_fields=["status", "updated_at"])
    cache.invalidate(cache.STORY_LIST)
    logger.info("Story %s marked %s", story.slug, status)
    return story


def increment_views(story_id) -> None:
    """Atomic best-effort view bump; never fails the caller."""
    try:
        Story.objects.filter(pk=story_id).update(views=F("views") + 1)
    except DatabaseError:
        logger.warning("Could not increment views for story %s", story_id, exc_info=True)


__all__ = [
    "compute_reading_time",
    "can_view",
    "visible_stories",
    "listable_stories",
    "apply_filters",
    "filter_by_tag",
    "parse_sort",
    "create_story",
    "update_story",
    "delete_story",
    "set_status",
    "increment_views",
]
