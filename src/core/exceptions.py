"""Custom exception handling to enforce the API error envelope."""

import logging
import re
from typing import Any

from django.db import DatabaseError, IntegrityError
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.exceptions import APIException, AuthenticationFailed, NotAuthenticated, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from authentication.services import BlocklistUnavailable

logger = logging.getLogger(__name__)


class Conflict(APIException):
    """The request clashes with the current state of a resource."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with the current state of the resource."
    default_code = "conflict"


_DUPLICATE_FIELD_PATTERNS = (
    re.compile(r"Key \((?P<field>[\w, ]+)\)="),  # PostgreSQL
    re.compile(r"UNIQUE constraint failed: \w+\.(?P<field>\w+)"),  # SQLite
)


def _first_message(payload: Any) -> str:
    """Pick a single human-readable message out of DRF's response.data."""

    if isinstance(payload, dict):
        if "detail" in payload:
            return str(payload["detail"])
        for field, value in payload.items():
            message = _first_message(value)
            if field == "non_field_errors":
                return message
            return f"{field}: {message}"
        return "Invalid request"
    if isinstance(payload, (list, tuple)):
        return _first_message(payload[0]) if payload else "Invalid request"
    return str(payload)


def duplicate_field_from(exc: IntegrityError) -> str | None:
    """Return the unique field named in a duplicate-key error, if any."""

    message = str(exc)
    for pattern in _DUPLICATE_FIELD_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group("field")
    return None


def _error(message: str, status_code: int, **extra: Any) -> Response:
    return Response({"success": False, "error": message, **extra}, status=status_code)


def custom_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Wrap errors in `{ "success": false, "error": "..." }` shape.

    - Storage errors (duplicate keys, protected references, outages) are
      translated before DRF sees them.
    - Uses DRF's default handler for API exceptions.
    - Anything left over is logged and reported as a 500.
    """

    view = context.get("view")
    request = context.get("request")
    where = f"{getattr(request, 'method', '?')} {getattr(request, 'path', '?')}"

    # Blocklist connectivity errors are security-critical and fail closed.
    if isinstance(exc, BlocklistUnavailable):
        logger.error("Blocklist unavailable during %s", where)
        return _error("Authentication service unavailable (blocklist).", status.HTTP_503_SERVICE_UNAVAILABLE)

    if isinstance(exc, ProtectedError):
        count = len(exc.protected_objects)
        return _error(
            f"Resource is still referenced by {count} record(s) and cannot be deleted.",
            status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, IntegrityError):
        field = duplicate_field_from(exc)
        if field:
            return _error(
                f"Duplicate field value for {field}. Please use another value.",
                status.HTTP_400_BAD_REQUEST,
            )
        logger.warning("Integrity error during %s: %s", where, exc)
        return _error("Request conflicts with existing data.", status.HTTP_400_BAD_REQUEST)

    # Treat other database errors as a temporary service outage and still
    # respect the envelope format instead of returning Django's HTML 500 page.
    if isinstance(exc, DatabaseError):
        logger.error("Database error during %s: %s", where, exc)
        return _error("Service temporarily unavailable.", status.HTTP_503_SERVICE_UNAVAILABLE)

    response = drf_exception_handler(exc, context)

    if response is None:
        logger.error(
            "Unhandled error in %s during %s",
            type(view).__name__ if view else "view",
            where,
            exc_info=exc,
        )
        return _error("Internal Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    # Auth failures are always 401, never DRF's 403 downgrade.
    if isinstance(exc, (AuthenticationFailed, NotAuthenticated)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    if response.status_code >= 500:
        logger.error("Error %s during %s: %s", response.status_code, where, exc)

    extra: dict[str, Any] = {}
    if isinstance(exc, ValidationError) and isinstance(response.data, dict):
        extra["errors"] = response.data
    response.data = {"success": False, "error": _first_message(response.data), **extra}
    return response
