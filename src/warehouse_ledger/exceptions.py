"""
Exception hierarchy for warehouse_ledger.

Every failure the ledger reports is a `LedgerError`. Validation failures are
raised before anything is written and are permanent for the same input.
`StorageFailure` (and its `LockAcquireTimeout` subclass) is the only kind
that signals an infrastructure problem and may be retried unchanged.

Callers that translate errors to a transport (HTTP, RPC) can use the
`code`, `status_code` and `retryable` attributes, and `context()` for the
ids and quantities involved.
"""


class LedgerError(Exception):
    """
    Base exception for all warehouse_ledger errors.

    Example
    -------
    >>> try:
    ...     ledger.move(product_id=1, from_warehouse_id=2, to_warehouse_id=3)
    ... except LedgerError as e:
    ...     report(e.code, e.context())
    """

    #: Stable error code for programmatic handling.
    code: str = "ledger_error"
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = "An unspecified warehouse_ledger error occurred."
        super().__init__(message)

    def context(self) -> dict:
        return {}


# Not found


class NotFound(LedgerError):
    code: str = "not_found"
    status_code: int = 404


class StockNotFound(NotFound):
    code: str = "stock_not_found"

    def __init__(self, product_id: int, warehouse_id: int) -> None:
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        super().__init__(
            f"No stock for product={product_id} at warehouse={warehouse_id}"
        )

    def context(self) -> dict:
        return {"product_id": self.product_id, "warehouse_id": self.warehouse_id}


class WarehouseNotFound(NotFound):
    code: str = "warehouse_not_found"

    def __init__(self, warehouse_id: int) -> None:
        self.warehouse_id = warehouse_id
        super().__init__(f"Warehouse {warehouse_id} does not exist")

    def context(self) -> dict:
        return {"warehouse_id": self.warehouse_id}


class ProductNotFound(NotFound):
    code: str = "product_not_found"

    def __init__(self, product_id: int) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} does not exist")

    def context(self) -> dict:
        return {"product_id": self.product_id}


# Conflicts


class AlreadyExists(LedgerError):
    code: str = "already_exists"
    status_code: int = 409


class StockAlreadyExists(AlreadyExists):
    code: str = "stock_already_exists"

    def __init__(self, product_id: int, warehouse_id: int) -> None:
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        super().__init__(
            f"Stock for product={product_id} at warehouse={warehouse_id} already exists"
        )

    def context(self) -> dict:
        return {"product_id": self.product_id, "warehouse_id": self.warehouse_id}


class DuplicateSKU(AlreadyExists):
    code: str = "duplicate_sku"

    def __init__(self, sku: int) -> None:
        self.sku = sku
        super().__init__(f"A product with SKU {sku} already exists")

    def context(self) -> dict:
        return {"sku": self.sku}


# Quantity rules


class CapacityExceeded(LedgerError):
    """
    Raised when a write would push a warehouse above its capacity.

    `attempted` is the occupancy the warehouse would have had after the write.
    """

    code: str = "capacity_exceeded"

    def __init__(self, warehouse_id: int, attempted: int, capacity: int) -> None:
        self.warehouse_id = warehouse_id
        self.attempted = attempted
        self.capacity = capacity
        super().__init__(
            f"Warehouse {warehouse_id} would hold {attempted} units "
            f"but its capacity is {capacity}"
        )

    def context(self) -> dict:
        return {
            "warehouse_id": self.warehouse_id,
            "attempted": self.attempted,
            "capacity": self.capacity,
        }


class InsufficientStock(LedgerError):
    code: str = "insufficient_stock"

    def __init__(
        self, product_id: int, warehouse_id: int, available: int, requested: int
    ) -> None:
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Stock amount was {available} whilst {requested} was requested "
            f"(product={product_id}, warehouse={warehouse_id})"
        )

    def context(self) -> dict:
        return {
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "available": self.available,
            "requested": self.requested,
        }


class IdentityMismatch(LedgerError):
    """
    Raised when ids supplied with a request disagree with the addressed record.
    """

    code: str = "identity_mismatch"

    def __init__(self, expected: dict, supplied: dict) -> None:
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            f"The supplied ids {supplied} do not match the addressed record {expected}"
        )

    def context(self) -> dict:
        return {"expected": self.expected, "supplied": self.supplied}


# Field validation


class InvalidValue(LedgerError):
    code: str = "invalid_value"

    def __init__(self, field: str, value, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}={value!r}: {reason}")

    def context(self) -> dict:
        return {"field": self.field, "value": self.value}


class InvalidSKU(InvalidValue):
    code: str = "invalid_sku"

    def __init__(self, sku: int) -> None:
        super().__init__("sku", sku, "SKU was not 8 digits")


class InvalidQuantity(InvalidValue):
    code: str = "invalid_quantity"

    def __init__(self, field: str, value: int, reason: str = "must be a non-negative integer") -> None:
        super().__init__(field, value, reason)


# Infrastructure


class StorageFailure(LedgerError):
    """
    Raised when the persistence layer failed to apply a request.

    The transaction has been rolled back; nothing was committed. This is the
    only error kind worth retrying with the same input.
    """

    code: str = "storage_failure"
    status_code: int = 503
    retryable: bool = True

    def __init__(self, message: str | None = None, operation: str | None = None) -> None:
        self.operation = operation
        if message is None:
            message = f"Storage failed while applying {operation or 'an operation'}"
        super().__init__(message)

    def context(self) -> dict:
        return {"operation": self.operation} if self.operation else {}


class LockAcquireTimeout(StorageFailure):
    """
    Raised when a warehouse lock cannot be acquired within the timeout.

    This typically indicates that another worker is mutating the same
    warehouse.

    Common causes
    -------------
    - A concurrent request is moving stock in or out of the same warehouse
    - The timeout value is too low
    - A long-running operation is holding the lock

    Example
    -------
    >>> try:
    ...     ledger.create(product_id=1, warehouse_id=2, amount=5)
    ... except LockAcquireTimeout:
    ...     retry_later()
    """

    code: str = "lock_acquire_timeout"

    def __init__(self, key: str, timeout: float | None) -> None:
        self.key = key
        self.timeout = timeout
        super().__init__(
            f"Failed to acquire lock for key='{key}' within timeout={timeout}s"
        )

    def context(self) -> dict:
        return {"key": self.key, "timeout": self.timeout}
