"""Field checks shared by the directory and the catalog."""
from __future__ import annotations

from .exceptions import InvalidValue
from .models import NAME_MAX_LENGTH, QUANTITY_MAX


def require_name(value) -> str:
    """Return the stripped name, or raise InvalidValue."""
    if not isinstance(value, str):
        raise InvalidValue("name", value, "must be a string")
    name = value.strip()
    if not name:
        raise InvalidValue("name", value, "must not be empty")
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidValue("name", value, f"must be at most {NAME_MAX_LENGTH} characters")
    return name


def require_count(field: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= QUANTITY_MAX:
        raise InvalidValue(field, value, f"must be an integer between 0 and {QUANTITY_MAX}")
    return value
