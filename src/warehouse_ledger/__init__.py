from .decorators import serialized
from .exceptions import (
    AlreadyExists,
    CapacityExceeded,
    DuplicateSKU,
    IdentityMismatch,
    InsufficientStock,
    InvalidQuantity,
    InvalidSKU,
    InvalidValue,
    LedgerError,
    LockAcquireTimeout,
    NotFound,
    ProductNotFound,
    StockAlreadyExists,
    StockNotFound,
    StorageFailure,
    WarehouseNotFound,
)
from .locking import lock

# StockLedger, WarehouseDirectory and ProductCatalog import the models, so
# they live in their own modules and are imported once Django is set up.

__all__ = [
    "lock",
    "serialized",
    "LedgerError",
    "NotFound",
    "StockNotFound",
    "WarehouseNotFound",
    "ProductNotFound",
    "AlreadyExists",
    "StockAlreadyExists",
    "DuplicateSKU",
    "CapacityExceeded",
    "InsufficientStock",
    "IdentityMismatch",
    "InvalidValue",
    "InvalidSKU",
    "InvalidQuantity",
    "StorageFailure",
    "LockAcquireTimeout",
]
