"""Offset pagination reporting ``count`` and ``pagination`` in the envelope."""

import math

from rest_framework.pagination import BasePagination
from rest_framework.response import Response


def _positive_int(raw, default: int, maximum: int | None = None) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    if value < 1:
        return default
    if maximum is not None:
        value = min(value, maximum)
    return value


class PageLimitPagination(BasePagination):
    """``?page=`` (1-based) and ``?limit=``; pages past the end are empty, not 404."""

    default_limit = 10
    max_limit = 100

    def paginate_queryset(self, queryset, request, view=None):
        self.page = _positive_int(request.query_params.get("page"), 1)
        self.limit = _positive_int(request.query_params.get("limit"), self.default_limit, self.max_limit)
        self.total = queryset.count()
        offset = (self.page - 1) * self.limit
        return list(queryset[offset:offset + self.limit])

    def get_pagination(self) -> dict:
        return {
            "totalPages": math.ceil(self.total / self.limit) if self.limit else 0,
            "currentPage": self.page,
        }

    def get_paginated_response(self, data):
        return Response(self.get_envelope(data))

    def get_envelope(self, data) -> dict:
        return {
            "success": True,
            "count": len(data),
            "pagination": self.get_pagination(),
            "data": data,
        }

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "properties": {
                "success": {"type": "boolean"},
                "count": {"type": "integer"},
                "pagination": {
                    "type": "object",
                    "properties": {
                        "totalPages": {"type": "integer"},
                        "currentPage": {"type": "integer"},
                    },
                },
                "data": schema,
            },
        }


__all__ = ["PageLimitPagination"]
