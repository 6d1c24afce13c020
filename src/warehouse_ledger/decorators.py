from __future__ import annotations

from functools import wraps
from inspect import signature
from typing import Any, Callable, Mapping

from .locking import _SETTING, lock

KeySpec = str | Callable[..., str]


def _resolve_key(
    key: KeySpec,
    fn: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> str:
    """
    Resolve a lock key from either:
    - a format string: "warehouse:{warehouse_id}"
    - a callable: lambda self, warehouse_id, **kw: f"warehouse:{warehouse_id}"

    We bind (args, kwargs) against the function signature so format strings can
    use both positional and keyword arguments reliably.
    """
    if callable(key):
        return key(*args, **kwargs)

    bound = signature(fn).bind_partial(*args, **kwargs)
    bound.apply_defaults()
    values: Mapping[str, Any] = bound.arguments

    try:
        return key.format(**values)
    except KeyError as e:
        missing = e.args[0]
        raise KeyError(
            f"warehouse_ledger: key template references '{missing}', "
            f"but it is not present in the function arguments. "
            f"Available: {sorted(values.keys())}"
        ) from e


def serialized(*keys: KeySpec, timeout: float | None = _SETTING):
    """
    Decorator that runs the function while holding every resolved key.

    Calls sharing at least one key never overlap. When the decorated function
    is a method whose instance has a `lock_backend` attribute, that backend
    is used instead of the default one.

    Examples
    --------
    @serialized(warehouse_key_template())
    def create(self, product_id, warehouse_id, amount):
        ...

    @serialized(
        warehouse_key_template("from_warehouse_id"),
        warehouse_key_template("to_warehouse_id"),
    )
    def move(self, product_id, from_warehouse_id, to_warehouse_id, amount=0):
        ...

    Raises LockAcquireTimeout when a key cannot be acquired in time.
    """
    if not keys:
        raise ValueError("serialized() needs at least one key")

    def decorator(fn: Callable[..., Any]):
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any):
            resolved = [_resolve_key(k, fn, args, kwargs) for k in keys]
            backend = getattr(args[0], "lock_backend", None) if args else None

            with lock(*resolved, timeout=timeout, backend=backend):
                return fn(*args, **kwargs)

        return wrapper

    return decorator
