"""
Stock ledger.

Owns the (product, warehouse) -> amount records and keeps every warehouse
within its capacity. Each write runs under the lock of every warehouse it
touches and inside one database transaction; all checks happen before the
first write, so a rejected request leaves no trace.
"""
from __future__ import annotations

import structlog

from .catalog import ProductCatalog
from .conf import ledger_setting
from .decorators import serialized
from .directory import WarehouseDirectory
from .exceptions import (
    CapacityExceeded,
    IdentityMismatch,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
    StockAlreadyExists,
    StockNotFound,
    WarehouseNotFound,
)
from .keys import warehouse_key_template
from .locking import get_backend
from .models import QUANTITY_MAX, Stock
from .transactions import atomic_operation

logger = structlog.get_logger(__name__)

#: Passing this as the amount of `move` transfers everything the source holds.
MOVE_ALL = 0


def _require_quantity(field: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= QUANTITY_MAX:
        raise InvalidQuantity(field, value, f"must be an integer between 0 and {QUANTITY_MAX}")


class StockLedger:
    def __init__(
        self,
        directory: WarehouseDirectory | None = None,
        catalog: ProductCatalog | None = None,
        using: str | None = None,
        lock_backend=None,
    ) -> None:
        self.using = using or ledger_setting("DATABASE")
        self.lock_backend = lock_backend or get_backend(self.using)
        self.directory = directory or WarehouseDirectory(self.using, self.lock_backend)
        self.catalog = catalog or ProductCatalog(self.using)

    def _stock(self):
        return Stock.objects.using(self.using)

    # Reads

    def all(self) -> list[Stock]:
        return list(self._stock())

    def all_at_warehouse(self, warehouse_id: int) -> list[Stock]:
        """Stock held at a warehouse; empty when there is none, even for an unknown id."""
        return list(self._stock().filter(warehouse_id=warehouse_id))

    def exists(self, product_id: int, warehouse_id: int) -> bool:
        return self._stock().filter(product_id=product_id, warehouse_id=warehouse_id).exists()

    def get(self, product_id: int, warehouse_id: int, *, for_update: bool = False) -> Stock:
        qs = self._stock()
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.get(product_id=product_id, warehouse_id=warehouse_id)
        except Stock.DoesNotExist:
            raise StockNotFound(product_id, warehouse_id) from None

    # Writes

    def _check_capacity(self, warehouse_id: int, delta: int) -> None:
        # Row lock on the warehouse, then a fresh sum inside this transaction.
        capacity = self.directory.get(warehouse_id, for_update=True).capacity
        attempted = self.directory.total_stock(warehouse_id) + delta
        if attempted > capacity:
            raise CapacityExceeded(warehouse_id, attempted=attempted, capacity=capacity)

    @serialized(warehouse_key_template())
    def create(
        self,
        product_id: int,
        warehouse_id: int,
        amount: int,
        min_acceptable_stock: int = 0,
    ) -> Stock:
        """
        Start tracking a product at a warehouse.

        Checks, first failure wins: the pair must be new, the warehouse and
        the product must exist, and the warehouse must have room for `amount`.
        """
        _require_quantity("amount", amount)
        _require_quantity("min_acceptable_stock", min_acceptable_stock)

        with atomic_operation("stock.create", self.using):
            if self.exists(product_id, warehouse_id):
                raise StockAlreadyExists(product_id, warehouse_id)
            if not self.directory.exists(warehouse_id):
                raise WarehouseNotFound(warehouse_id)
            if not self.catalog.exists(product_id):
                raise ProductNotFound(product_id)
            self._check_capacity(warehouse_id, amount)

            stock = Stock(
                product_id=product_id,
                warehouse_id=warehouse_id,
                amount=amount,
                min_acceptable_stock=min_acceptable_stock,
            )
            stock.save(using=self.using)

        logger.info(
            "stock_created",
            product_id=product_id,
            warehouse_id=warehouse_id,
            amount=amount,
        )
        return stock

    @serialized(warehouse_key_template())
    def update(
        self,
        product_id: int,
        warehouse_id: int,
        amount: int,
        min_acceptable_stock: int = 0,
        *,
        request_product_id: int | None = None,
        request_warehouse_id: int | None = None,
    ) -> Stock:
        """
        Replace the amount and threshold of an existing record.

        `request_product_id` / `request_warehouse_id` are the ids a caller
        sent alongside the new values (e.g. in a request body); if given they
        must name the addressed record, since a record's ids never change.
        """
        supplied = {
            "product_id": request_product_id if request_product_id is not None else product_id,
            "warehouse_id": request_warehouse_id if request_warehouse_id is not None else warehouse_id,
        }
        expected = {"product_id": product_id, "warehouse_id": warehouse_id}
        if supplied != expected:
            raise IdentityMismatch(expected=expected, supplied=supplied)

        _require_quantity("amount", amount)
        _require_quantity("min_acceptable_stock", min_acceptable_stock)

        with atomic_operation("stock.update", self.using):
            stock = self.get(product_id, warehouse_id, for_update=True)
            delta = amount - stock.amount
            self._check_capacity(warehouse_id, delta)

            stock.amount = amount
            stock.min_acceptable_stock = min_acceptable_stock
            stock.save(using=self.using, update_fields=["amount", "min_acceptable_stock"])

        logger.info(
            "stock_updated",
            product_id=product_id,
            warehouse_id=warehouse_id,
            amount=amount,
            delta=delta,
        )
        return stock

    @serialized(warehouse_key_template())
    def delete(self, product_id: int, warehouse_id: int) -> None:
        with atomic_operation("stock.delete", self.using):
            self.get(product_id, warehouse_id, for_update=True).delete(using=self.using)
        logger.info("stock_deleted", product_id=product_id, warehouse_id=warehouse_id)

    @serialized(
        warehouse_key_template("from_warehouse_id"),
        warehouse_key_template("to_warehouse_id"),
    )
    def move(
        self,
        product_id: int,
        from_warehouse_id: int,
        to_warehouse_id: int,
        amount: int = MOVE_ALL,
    ) -> tuple[Stock, Stock]:
        """
        Transfer units of a product from one warehouse to another.

        An `amount` of MOVE_ALL (0) moves everything the source holds. The
        source row stays in place even when it drops to 0. The destination
        row is incremented, or created with a threshold of 0. Capacity is
        checked against the destination's whole current occupancy, also when it
        is the source warehouse; such a move then writes nothing.

        Returns the (source, destination) records after the move.
        """
        with atomic_operation("stock.move", self.using):
            source = self.get(product_id, from_warehouse_id, for_update=True)
            _require_quantity("amount", amount)
            if amount == MOVE_ALL:
                amount = source.amount

            if amount > source.amount:
                raise InsufficientStock(
                    product_id,
                    from_warehouse_id,
                    available=source.amount,
                    requested=amount,
                )

            self._check_capacity(to_warehouse_id, amount)

            if to_warehouse_id == from_warehouse_id:
                # Checked like any other destination, but nothing to write.
                return source, source

            source.amount -= amount
            source.save(using=self.using, update_fields=["amount"])

            destination = (
                self._stock()
                .select_for_update()
                .filter(product_id=product_id, warehouse_id=to_warehouse_id)
                .first()
            )
            if destination is None:
                destination = Stock(
                    product_id=product_id,
                    warehouse_id=to_warehouse_id,
                    amount=amount,
                    min_acceptable_stock=0,
                )
                destination.save(using=self.using)
            else:
                destination.amount += amount
                destination.save(using=self.using, update_fields=["amount"])

        logger.info(
            "stock_moved",
            product_id=product_id,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            amount=amount,
        )
        return source, destination
