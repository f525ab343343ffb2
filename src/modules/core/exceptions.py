"""Cross-module domain exceptions and the DRF error envelope.

Module-specific exceptions (``ProductNotFound``, ``DuplicateSlug`` ...)
live in each module's ``exceptions.py``; the classes here are shared by
both catalog modules.

``standardized_exception_handler`` renders framework errors (auth,
request validation, unknown routes) as::

    {"type": "client_error", "errors": [{"code": ..., "detail": ..., "attr": ...}]}
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

import structlog
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


class IllegalOperation(Exception):
    """A business rule forbids the requested change.

    Examples: changing an immutable slug/SKU, releasing more stock than
    is reserved, deactivating a category that still has active products.
    """


class ConcurrentModification(Exception):
    """The row changed between read and write (stale ``version``).

    The caller may reload and retry.
    """


# ---------------------------------------------------------------------------
# DRF exception handler
# ---------------------------------------------------------------------------


def _flatten(detail: Any, attr: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    if isinstance(detail, dict):
        for key, value in detail.items():
            if key == "non_field_errors":
                name = attr
            else:
                name = key if attr is None else f"{attr}.{key}"
            yield from _flatten(value, name)
    elif isinstance(detail, list):
        for item in detail:
            yield from _flatten(item, attr)
    else:
        yield {
            "code": getattr(detail, "code", "error"),
            "detail": str(detail),
            "attr": attr,
        }


def standardized_exception_handler(exc: Exception, context: Dict[str, Any]):
    response: Optional[Response] = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        error_type = "validation_error"
    elif response.status_code >= 500:
        error_type = "server_error"
    else:
        error_type = "client_error"

    data = response.data
    if isinstance(data, dict) and set(data) == {"detail"}:
        data = data["detail"]

    response.data = {
        "type": error_type,
        "errors": list(_flatten(data)),
    }
    logger.info(
        "api.error",
        error_type=error_type,
        status_code=response.status_code,
        view=context["view"].__class__.__name__ if context.get("view") else None,
    )
    return response
