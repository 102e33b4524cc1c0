"""
DRF exception handler that understands ``pulseplush.exceptions``.

Register in settings::

    REST_FRAMEWORK = {
        'EXCEPTION_HANDLER': 'pulseplush.exception_handler.domain_exception_handler',
    }
"""
from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from pulseplush.exceptions import (
    DomainError,
    NotFound,
    PermissionDenied,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

# Most specific first; DomainError is the catch-all.
_STATUS_MAP: dict[type, int] = {
    PermissionDenied: 403,
    NotFound: 404,
    StoreUnavailable: 503,
    DomainError: 400,
}


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    for exc_class, status_code in _STATUS_MAP.items():
        if isinstance(exc, exc_class):
            logger.warning(
                "Domain exception [%s] in %s: %s",
                type(exc).__name__,
                context.get("view", "unknown"),
                exc,
            )
            body = {"success": False, "detail": str(exc)}
            if isinstance(exc, StoreUnavailable):
                body["retryable"] = True
            return Response(body, status=status_code)

    return None
