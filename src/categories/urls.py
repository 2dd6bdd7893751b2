"""Routing for the category viewset."""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import CategoryViewSet

router = SimpleRouter(trailing_slash=False)
router.register(r"categories", CategoryViewSet, basename="category")

urlpatterns = [
    path("", include(router.urls)),
]
