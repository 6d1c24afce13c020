from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Protocol

import structlog
from django.db import connections
from django.utils.module_loading import import_string

from .conf import ledger_setting
from .exceptions import LockAcquireTimeout
from .keys import ordered_keys

logger = structlog.get_logger(__name__)


class LockBackend(Protocol):
    """
    Protocol describing the minimal backend interface.

    Implementations: PostgresAdvisoryLockBackend (cross-process) and
    LocalLockBackend (single process).
    """
    def acquire(self, key: str, timeout: float | None) -> bool: ...
    def release(self, key: str) -> None: ...


_SETTING: Any = object()

# One backend per database alias, so every caller shares the same lock state.
_backends: dict[str, LockBackend] = {}


def get_backend(using: str | None = None) -> LockBackend:
    """
    Return the process-wide backend for a database alias.

    LOCK_BACKEND wins when set; otherwise PostgreSQL gets advisory locks and
    every other vendor gets in-process locks.
    """
    using = using or ledger_setting("DATABASE")
    backend = _backends.get(using)
    if backend is not None:
        return backend

    path = ledger_setting("LOCK_BACKEND")
    if path is None:
        if connections[using].vendor == "postgresql":
            path = "warehouse_ledger.backends.postgres.PostgresAdvisoryLockBackend"
        else:
            path = "warehouse_ledger.backends.local.LocalLockBackend"

    backend = _backends.setdefault(using, import_string(path)(using=using))
    return backend


def reset_backends() -> None:
    """Forget cached backends, e.g. after changing settings in tests."""
    _backends.clear()


@contextmanager
def lock(
    *keys: str,
    timeout: float | None = _SETTING,
    backend: LockBackend | None = None,
) -> Iterator[None]:
    """
    Hold the locks for all given keys for the duration of the block.

    Keys are deduplicated and acquired in sorted order; the timeout applies
    to each key. Locks already taken are released if a later one cannot be
    acquired.

    Parameters
    ----------
    keys : str
        Lock identifiers, typically from `keys.warehouse_key()`.

    timeout : float | None
        Seconds to wait per key. None blocks. Defaults to the LOCK_TIMEOUT
        setting.

    backend : LockBackend | None
        Optional backend override. Defaults to `get_backend()`.

    Raises
    ------
    LockAcquireTimeout
        If a lock cannot be acquired within the timeout.

    Example
    -------
    >>> with lock("warehouse:1", "warehouse:2"):
    ...     transfer()
    """
    if timeout is _SETTING:
        timeout = ledger_setting("LOCK_TIMEOUT")
    be = backend or get_backend()

    held: list[str] = []
    try:
        for key in ordered_keys(keys):
            if not be.acquire(key, timeout):
                logger.warning("lock_contention", key=key, timeout=timeout)
                raise LockAcquireTimeout(key, timeout)
            held.append(key)

        yield
    finally:
        for key in reversed(held):
            be.release(key)
