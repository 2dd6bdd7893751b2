"""Serializers for story comments."""

from rest_framework import serializers

from authentication.serializers import AuthorSerializer
from .models import Comment


class CommentSerializer(serializers.ModelSerializer):
    author = AuthorSerializer(read_only=True)
    story = serializers.PrimaryKeyRelatedField(read_only=True)
    text = serializers.CharField(
        error_messages={"required": "Comment text cannot be empty", "blank": "Comment text cannot be empty"},
    )
    rating = serializers.IntegerField(
        min_value=1,
        max_value=5,
        error_messages={
            "required": "Please provide a rating between 1 and 5",
            "min_value": "Please provide a rating between 1 and 5",
            "max_value": "Please provide a rating between 1 and 5",
            "invalid": "Please provide a rating between 1 and 5",
        },
    )
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        """Author and story come from the request, never from the payload."""
        model = Comment
        fields = ["id", "text", "rating", "author", "story", "createdAt"]
        read_only_fields = ["id", "author", "story", "createdAt"]


__all__ = ["CommentSerializer"]
