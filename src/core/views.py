"""Liveness endpoint used by load balancers and container probes."""

from typing import Any

from django.db import connection

from .response import BaseAPIView, api_response


class HealthView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def get(self, request):
        """Report OK once the database answers; storage errors surface as 503."""
        connection.ensure_connection()
        return api_response({"status": "ok"})
