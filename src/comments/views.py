"""Comment endpoints nested under a story."""

from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.generics import get_object_or_404

from access_control.permissions import IsAuthenticatedUser
from access_control.roles import is_staff_member
from core.response import BaseAPIView, api_response
from stories.services import visible_stories
from . import services
from .models import Comment
from .serializers import CommentSerializer


class StoryCommentsView(BaseAPIView):
    """GET lists a story's comments; POST adds one and refreshes the rating."""

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsAuthenticatedUser()]
        return []

    # noinspection PyMethodMayBeStatic
    def get(self, request, story_id):
        """Comments for a visible story, newest first."""
        story = get_object_or_404(visible_stories(request.user), pk=story_id)
        comments = Comment.objects.filter(story=story).select_related("author").order_by("-created_at")
        data = CommentSerializer(comments, many=True).data
        return api_response(data, count=len(data))

    # noinspection PyMethodMayBeStatic
    def post(self, request, story_id):
        """Add a rated comment; the story must exist and be visible to the caller."""
        story = get_object_or_404(visible_stories(request.user), pk=story_id)
        serializer = CommentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = services.add_comment(
            story,
            request.user,
            serializer.validated_data["text"],
            serializer.validated_data["rating"],
        )
        return api_response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)


class StoryCommentDetailView(BaseAPIView):
    permission_classes = [IsAuthenticatedUser]

    # noinspection PyMethodMayBeStatic
    def delete(self, request, story_id, pk):
        """Remove a comment (its author or staff) and refresh the story rating."""
        comment = get_object_or_404(Comment, pk=pk, story_id=story_id)
        if comment.author_id != request.user.pk and not is_staff_member(request.user):
            raise PermissionDenied("Not authorized to delete this comment.")
        services.delete_comment(comment)
        return api_response({})


__all__ = ["StoryCommentsView", "StoryCommentDetailView"]
