"""Category ViewSet: public reads, super-admin writes."""

import logging

from rest_framework import status

from access_control.permissions import allow_roles
from core import cache
from core.exceptions import Conflict
from core.response import BaseViewSet, api_response
from .models import Category
from .serializers import CategorySerializer

logger = logging.getLogger(__name__)


class CategoryViewSet(BaseViewSet):
    serializer_class = CategorySerializer
    queryset = Category.objects.all()
    pagination_class = None

    # Writes have an empty allow-list: only the super-admin bypass gets through.
    action_roles = {
        "create": (),
        "update": (),
        "partial_update": (),
        "destroy": (),
    }

    def get_permissions(self):
        if self.action in self.action_roles:
            return [allow_roles(*self.action_roles[self.action])()]
        return []

    def list(self, request, *args, **kwargs):
        """All categories sorted by name (cached)."""
        data = cache.cached(
            cache.CATEGORY_LIST,
            ("all",),
            lambda: CategorySerializer(self.get_queryset(), many=True).data,
        )
        return api_response(data, count=len(data))

    def perform_create(self, serializer):
        serializer.save()
        cache.invalidate(cache.CATEGORY_LIST)

    def perform_update(self, serializer):
        serializer.save()
        cache.invalidate(cache.CATEGORY_LIST)
        # Story payloads embed the category name and slug.
        cache.invalidate(cache.STORY_LIST)

    def destroy(self, request, *args, **kwargs):
        """Delete a category unless stories are still filed under it."""
        category = self.get_object()
        in_use = category.stories.count()
        if in_use:
            raise Conflict(
                f"Cannot delete category '{category.name}': {in_use} stories still use it."
            )
        category.delete()
        cache.invalidate(cache.CATEGORY_LIST)
        logger.info("Category %s deleted", category.slug)
        return api_response({}, status=status.HTTP_200_OK)


__all__ = ["CategoryViewSet"]
