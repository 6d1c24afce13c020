from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import structlog
from django.db import DatabaseError, transaction

from .conf import ledger_setting
from .exceptions import StorageFailure

logger = structlog.get_logger(__name__)


@contextmanager
def atomic_operation(operation: str, using: str | None = None) -> Iterator[None]:
    """
    Run one ledger operation as a single database transaction.

    Ledger errors raised inside the block roll the transaction back and
    propagate unchanged. A database error (including one raised while
    committing) is re-raised as StorageFailure, so callers can tell an
    invalid request from a valid one that could not be applied.
    """
    using = using or ledger_setting("DATABASE")
    try:
        with transaction.atomic(using=using):
            yield
    except DatabaseError as exc:
        logger.error("storage_failure", operation=operation, error=str(exc))
        raise StorageFailure(operation=operation) from exc
