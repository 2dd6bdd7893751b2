"""Routing for the story viewset."""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import StoryViewSet

router = SimpleRouter(trailing_slash=False)
router.register(r"stories", StoryViewSet, basename="story")

urlpatterns = [
    path("", include(router.urls)),
]
