"""Serializers for category CRUD."""

from rest_framework import serializers
from rest_framework.validators import UniqueValidator

from core.slugs import unique_slug
from .models import Category


class CategorySerializer(serializers.ModelSerializer):
    """Name is writable; the slug is always derived from it."""

    name = serializers.CharField(
        min_length=2,
        max_length=50,
        trim_whitespace=True,
        error_messages={"blank": "Category name is required"},
        validators=[UniqueValidator(queryset=Category.objects.all(), message="Category name already exists")],
    )
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        """Expose id, name, slug and timestamps; slug is read-only."""
        model = Category
        fields = ["id", "name", "slug", "createdAt", "updatedAt"]
        read_only_fields = ["id", "slug"]

    def create(self, validated_data):
        validated_data["slug"] = unique_slug(Category, validated_data["name"])
        return super().create(validated_data)

    def update(self, instance, validated_data):
        name = validated_data.get("name")
        if name and name != instance.name:
            validated_data["slug"] = unique_slug(Category, name, exclude_pk=instance.pk)
        return super().update(instance, validated_data)


__all__ = ["CategorySerializer"]
