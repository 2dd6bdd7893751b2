"""Routing for comments nested under stories."""

from django.urls import path

from .views import StoryCommentDetailView, StoryCommentsView

urlpatterns = [
    path("stories/<int:story_id>/comments", StoryCommentsView.as_view(), name="story-comments"),
    path(
        "stories/<int:story_id>/comments/<int:pk>",
        StoryCommentDetailView.as_view(),
        name="story-comment-detail",
    ),
]
