"""
Settings for warehouse_ledger.

Configure the app through a single dict in the Django settings module:

    WAREHOUSE_LEDGER = {
        "LOCK_TIMEOUT": 3.0,
        "LOCK_BACKEND": "warehouse_ledger.backends.local.LocalLockBackend",
        "DATABASE": "default",
    }

Any key left out falls back to DEFAULTS.
"""
from __future__ import annotations

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    # Seconds to wait for a warehouse lock; None blocks until acquired.
    "LOCK_TIMEOUT": 3.0,
    # Dotted path to a LockBackend class; None picks one from the DB vendor.
    "LOCK_BACKEND": None,
    "DATABASE": "default",
}


def ledger_setting(name: str) -> Any:
    if name not in DEFAULTS:
        raise KeyError(
            f"warehouse_ledger: unknown setting '{name}'. "
            f"Available: {sorted(DEFAULTS)}"
        )
    overrides = getattr(settings, "WAREHOUSE_LEDGER", None) or {}
    return overrides.get(name, DEFAULTS[name])
