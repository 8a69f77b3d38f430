"""
core.domain.exception_handler — DRF-compatible global exception handler.

Maps domain exceptions from ``core.domain.exceptions`` to DRF
``Response`` objects so that views don't need per-endpoint try/except
boilerplate.  Anything that is neither a DRF nor a domain exception is
logged with request context and turned into a generic 500 payload, so
a raw stack trace never reaches the client.

Register in ``settings.py``::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    Conflict,
    DependencyUnavailable,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    SchedulingConflict,
)

logger = logging.getLogger(__name__)

# Domain exception → HTTP status code
_STATUS_MAP: dict[type, int] = {
    PermissionDenied:      403,
    NotFound:              404,
    InvalidTransition:     409,
    SchedulingConflict:    409,
    Conflict:              409,
    DependencyUnavailable: 503,
    DomainError:           400,  # catch-all base class last
}


def _request_context(context: dict) -> tuple[str, str, str, object]:
    view = context.get("view")
    request = context.get("request")
    view_name = type(view).__name__ if view is not None else "unknown"
    method = getattr(request, "method", "-")
    path = getattr(request, "path", "-")
    user = getattr(request, "user", None)
    actor_id = getattr(user, "pk", None)
    return view_name, method, path, actor_id


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler that also handles ``core.domain.exceptions``.

    The default DRF handler is called first.  If it returns ``None``
    (meaning DRF doesn't recognise the exception), we check whether
    it's one of our domain exceptions and return an appropriate response.
    """
    # Let DRF handle its own exceptions (ValidationError, AuthN, etc.)
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    view_name, method, path, actor_id = _request_context(context)

    # Most specific first
    for exc_class, status_code in _STATUS_MAP.items():
        if isinstance(exc, exc_class):
            logger.warning(
                "Domain exception [%s] in %s (%s %s, actor=%s): %s",
                exc_class.__name__,
                view_name,
                method,
                path,
                actor_id,
                exc,
            )
            return Response(
                {"detail": str(exc), "code": exc.code},
                status=status_code,
            )

    logger.error(
        "Unhandled error in %s (%s %s, actor=%s)",
        view_name,
        method,
        path,
        actor_id,
        exc_info=exc,
    )
    return Response(
        {"detail": "An internal error occurred.", "code": "internal_error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
