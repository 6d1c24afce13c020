import hashlib
from typing import Iterable

WAREHOUSE_KEY_PREFIX = "warehouse:"


def warehouse_key(warehouse_id: int) -> str:
    """Lock key guarding every write that changes a warehouse's occupancy."""
    return f"{WAREHOUSE_KEY_PREFIX}{int(warehouse_id)}"


def warehouse_key_template(argument: str = "warehouse_id") -> str:
    """
    The warehouse key as a `@serialized` template reading the id from `argument`.

    >>> warehouse_key_template("to_warehouse_id")
    'warehouse:{to_warehouse_id}'
    """
    return WAREHOUSE_KEY_PREFIX + "{" + argument + "}"


def ordered_keys(keys: Iterable[str]) -> list[str]:
    """
    Deduplicate lock keys and put them in a fixed acquisition order.

    Two operations that need the same pair of warehouses (e.g. moves in
    opposite directions) always take the locks in the same order, so they
    can never wait on each other in a cycle.
    """
    return sorted(set(keys))


def key_to_int64(key: str) -> int:
    """
    Convert a lock key into a stable signed 64-bit integer.

    PostgreSQL advisory locks are identified by a BIGINT, while ledger keys
    are strings such as "warehouse:42". The key is hashed with an 8-byte
    BLAKE2b digest, which is stable across processes and Python versions,
    and the unsigned result is shifted into the signed range
    (-2^63 to 2^63-1) PostgreSQL expects.
    """
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, byteorder="big", signed=False)

    if value >= 2**63:
        value -= 2**64

    return value
