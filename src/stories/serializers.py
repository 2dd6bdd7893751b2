"""Serializers for stories: camelCase read payloads and validated writes."""

from rest_framework import serializers

from authentication.serializers import AuthorSerializer
from categories.models import Category
from comments.serializers import CommentSerializer
from core.images import UnsupportedImage, check_image
from .models import Story, StoryStatus


class CategorySummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "slug"]
        read_only_fields = fields


class StorySerializer(serializers.ModelSerializer):
    """Read payload. Pass ``fields=[...]`` to project a subset (``id`` is always kept)."""

    author = AuthorSerializer(read_only=True)
    category = CategorySummarySerializer(read_only=True)
    coverImage = serializers.CharField(source="cover_image", read_only=True)
    readingTime = serializers.IntegerField(source="reading_time", read_only=True)
    avgRating = serializers.FloatField(source="avg_rating", read_only=True)
    commentCount = serializers.IntegerField(source="comment_count", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        """Every story field; all read-only here, writes go through StoryWriteSerializer."""
        model = Story
        fields = [
            "id",
            "title",
            "slug",
            "content",
            "author",
            "category",
            "tags",
            "status",
            "coverImage",
            "readingTime",
            "avgRating",
            "views",
            "commentCount",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields

    def __init__(self, *args, fields=None, **kwargs):
        super().__init__(*args, **kwargs)
        if fields:
            keep = set(fields) | {"id"}
            for name in list(self.fields):
                if name not in keep:
                    self.fields.pop(name)


class StoryDetailSerializer(StorySerializer):
    """Single-story payload including its comments, newest first."""

    comments = serializers.SerializerMethodField()

    class Meta(StorySerializer.Meta):
        fields = StorySerializer.Meta.fields + ["comments"]
        read_only_fields = fields

    def get_comments(self, story):
        comments = story.comments.select_related("author").order_by("-created_at")
        return CommentSerializer(comments, many=True).data


class TagsField(serializers.ListField):
    """Accept a JSON list, repeated form fields, or a comma-separated string."""

    child = serializers.CharField(max_length=50, allow_blank=True)

    def to_internal_value(self, data):
        if isinstance(data, str):
            data = [data]
        items = super().to_internal_value(data)
        tags: list[str] = []
        for item in items:
            for tag in item.split(","):
                tag = tag.strip()
                if tag and tag not in tags:
                    tags.append(tag)
        return tags


class StoryWriteSerializer(serializers.Serializer):
    """Validate create/update input; the cover arrives as the ``coverImage`` file."""

    title = serializers.CharField(
        max_length=100,
        error_messages={"required": "Title is required", "blank": "Title is required"},
    )
    content = serializers.CharField(
        trim_whitespace=False,
        error_messages={"required": "Content is required", "blank": "Content is required"},
    )
    category = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        error_messages={
            "required": "Category is required",
            "null": "Category is required",
            "does_not_exist": "Invalid category ID",
            "incorrect_type": "Invalid category ID",
        },
    )
    tags = TagsField(required=False)
    coverImage = serializers.FileField(required=False, write_only=True)

    def validate_title(self, value):
        return value.strip()

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Content is required")
        return value

    def validate_coverImage(self, value):
        try:
            check_image(value)
        except UnsupportedImage as exc:
            raise serializers.ValidationError(str(exc)) from exc
        return value


class StoryStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=StoryStatus.choices,
        error_messages={"invalid_choice": "Invalid status value", "required": "Invalid status value"},
    )


__all__ = [
    "StorySerializer",
    "StoryDetailSerializer",
    "StoryWriteSerializer",
    "StoryStatusSerializer",
]
