"""Story ViewSet: public listing/reading, author edits, staff moderation."""

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.generics import get_object_or_404

from access_control.permissions import allow_roles
from access_control.roles import Role, is_staff_member
from core import cache
from core.pagination import PageLimitPagination
from core.response import BaseViewSet, api_response
from . import services
from .models import Story, StoryStatus
from .serializers import (
    StoryDetailSerializer,
    StorySerializer,
    StoryStatusSerializer,
    StoryWriteSerializer,
)

AUTHOR_ROLES = (Role.USER, Role.ADMIN)


class StoryViewSet(BaseViewSet):
    serializer_class = StorySerializer
    pagination_class = PageLimitPagination
    queryset = Story.objects.select_related("author", "category")

    action_roles = {
        "create": AUTHOR_ROLES,
        "update": AUTHOR_ROLES,
        "partial_update": AUTHOR_ROLES,
        "destroy": AUTHOR_ROLES,
        "mine": AUTHOR_ROLES,
        "set_status": (Role.ADMIN,),
    }

    def get_permissions(self):
        if self.action in self.action_roles:
            return [allow_roles(*self.action_roles[self.action])()]
        return []

    def get_queryset(self):
        if self.action in ("retrieve", "by_slug"):
            return services.visible_stories(self.request.user)
        return super().get_queryset()

    def _projection(self) -> list[str] | None:
        raw = self.request.query_params.get("fields")
        if not raw:
            return None
        return [name.strip() for name in raw.split(",") if name.strip()]

    def list(self, request, *args, **kwargs):
        """Approved stories for the public; staff see every status (``?status=`` filters)."""
        params = request.query_params
        status_filter = None
        if is_staff_member(request.user):
            status_filter = params.get("status") or None
            if status_filter and status_filter not in StoryStatus.values:
                raise ValidationError({"status": ["Invalid status value"]})
            return api_response_from(self._list_envelope(params, status_filter))

        cache_parts = tuple(sorted((key, tuple(params.getlist(key))) for key in params.keys()))
        envelope = cache.cached(
            cache.STORY_LIST,
            cache_parts,
            lambda: self._list_envelope(params, None),
        )
        return api_response_from(envelope)

    def _list_envelope(self, params, status_filter) -> dict:
        queryset = services.listable_stories(self.request.user, status_filter)
        queryset = services.apply_filters(queryset, params)
        queryset = queryset.order_by(*services.parse_sort(params.get("sort")))
        paginator = self.paginator
        page = paginator.paginate_queryset(queryset, self.request, view=self)
        data = StorySerializer(page, many=True, fields=self._projection()).data
        return paginator.get_envelope(data)

    def retrieve(self, request, *args, **kwargs):
        """A story visible to the caller; counts the view on a best-effort basis."""
        story = self.get_object()
        return self._detail_response(story)

    @action(detail=False, methods=["get"], url_path=r"slug/(?P<slug>[-\w]+)")
    def by_slug(self, request, slug=None):
        story = get_object_or_404(self.get_queryset(), slug=slug)
        return self._detail_response(story)

    def _detail_response(self, story):
        data = StoryDetailSerializer(story).data
        services.increment_views(story.pk)
        return api_response(data)

    @action(detail=False, methods=["get"], url_path="me")
    def mine(self, request):
        """The caller's own stories in every status."""
        stories = (
            Story.objects.select_related("author", "category")
            .filter(author=request.user)
            .order_by("-created_at")
        )
        data = StorySerializer(stories, many=True).data
        return api_response(data, count=len(data))

    def create(self, request, *args, **kwargs):
        serializer = StoryWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        cover = data.pop("coverImage", None)
        story = services.create_story(request.user, data, cover=cover)
        return api_response(StorySerializer(story).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        """Author-only edit; PUT and PATCH both accept any subset of fields.

        The story goes back to ``pending``.
        """
        story = get_object_or_404(Story, pk=kwargs.get("pk"))
        if story.author_id != request.user.pk:
            raise PermissionDenied("User not authorized to update this story")
        serializer = StoryWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        cover = data.pop("coverImage", None)
        story = services.update_story(story, data, cover=cover)
        return api_response(StorySerializer(story).data)

    def destroy(self, request, *args, **kwargs):
        """The author or staff may delete; the hosted cover is released too."""
        story = get_object_or_404(Story, pk=kwargs.get("pk"))
        if story.author_id != request.user.pk and not is_staff_member(request.user):
            raise PermissionDenied("Not authorized to delete this story")
        services.delete_story(story)
        return api_response({})

    @action(detail=True, methods=["put"], url_path="status")
    def set_status(self, request, pk=None):
        """Moderation: move a story to pending, approved or rejected."""
        serializer = StoryStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        story = get_object_or_404(Story, pk=pk)
        story = services.set_status(story, serializer.validated_data["status"])
        return api_response(StorySerializer(story).data)


def api_response_from(envelope: dict):
    """Wrap a prepared (possibly cached) list envelope without re-enveloping it."""
    extra = {key: value for key, value in envelope.items() if key not in ("success", "data")}
    return api_response(envelope["data"], **extra)


__all__ = ["StoryViewSet"]
