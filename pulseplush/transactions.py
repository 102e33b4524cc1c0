"""
pulseplush.transactions: store error translation and row locking.

Usage::

    from pulseplush.transactions import store_guard, lock_for_update

    with store_guard("record response"), transaction.atomic():
        blood_request = lock_for_update(BloodRequest, request_id)
        ...
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, TypeVar

from django.db import DatabaseError, models

from pulseplush.exceptions import NotFound, StoreUnavailable

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=models.Model)


@contextmanager
def store_guard(operation: str = "store operation"):
    """
    Re-raise any ``DatabaseError`` escaping the block as ``StoreUnavailable``.

    Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except DatabaseError as exc:
        logger.error(f"{operation} failed: {exc}")
        raise StoreUnavailable(f"Could not complete {operation}: the data store is unavailable.") from exc


def lock_for_update(model_class: type[M], pk: Any, label: str | None = None) -> M:
    """
    ``select_for_update().get(pk=pk)``; must run inside ``transaction.atomic()``.

    Raises:
        NotFound: If no row with that pk exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except (model_class.DoesNotExist, ValueError, TypeError):
        name = label or model_class._meta.verbose_name.title()
        raise NotFound(f"{name} not found.")
