"""Warehouse directory: warehouse identity, capacity and occupancy."""
from __future__ import annotations

import structlog
from django.db.models import Sum
from django.db.models.functions import Coalesce

from .conf import ledger_setting
from .decorators import serialized
from .exceptions import CapacityExceeded, IdentityMismatch, WarehouseNotFound
from .keys import warehouse_key_template
from .locking import get_backend
from .models import Stock, Warehouse
from .transactions import atomic_operation
from .validators import require_count, require_name

logger = structlog.get_logger(__name__)


class WarehouseDirectory:
    def __init__(self, using: str | None = None, lock_backend=None) -> None:
        self.using = using or ledger_setting("DATABASE")
        self.lock_backend = lock_backend or get_backend(self.using)

    def _warehouses(self):
        return Warehouse.objects.using(self.using)

    # Queries

    def all(self) -> list[Warehouse]:
        return list(self._warehouses())

    def exists(self, warehouse_id: int) -> bool:
        return self._warehouses().filter(pk=warehouse_id).exists()

    def get(self, warehouse_id: int, *, for_update: bool = False) -> Warehouse:
        qs = self._warehouses()
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.get(pk=warehouse_id)
        except Warehouse.DoesNotExist:
            raise WarehouseNotFound(warehouse_id) from None

    def capacity(self, warehouse_id: int) -> int:
        return self.get(warehouse_id).capacity

    def total_stock(self, warehouse_id: int) -> int:
        """
        Units currently held at the warehouse, summed over all products.

        Always computed from the Stock rows; callers checking capacity must
        call it inside the same transaction as their write.
        """
        qs = Stock.objects.using(self.using).filter(warehouse_id=warehouse_id)
        return qs.aggregate(total=Coalesce(Sum("amount"), 0))["total"]

    # Seeding

    def create(self, name: str, capacity: int) -> Warehouse:
        name = require_name(name)
        require_count("capacity", capacity)
        with atomic_operation("warehouse.create", self.using):
            warehouse = Warehouse(name=name, capacity=capacity)
            warehouse.save(using=self.using)
        logger.info("warehouse_created", warehouse_id=warehouse.pk, capacity=capacity)
        return warehouse

    @serialized(warehouse_key_template())
    def update(
        self,
        warehouse_id: int,
        name: str,
        capacity: int,
        *,
        request_warehouse_id: int | None = None,
    ) -> Warehouse:
        """
        Rename a warehouse or change its capacity.

        Capacity cannot drop below what the warehouse currently holds.
        """
        if request_warehouse_id is not None and request_warehouse_id != warehouse_id:
            raise IdentityMismatch(
                expected={"warehouse_id": warehouse_id},
                supplied={"warehouse_id": request_warehouse_id},
            )
        with atomic_operation("warehouse.update", self.using):
            warehouse = self.get(warehouse_id, for_update=True)
            name = require_name(name)
            require_count("capacity", capacity)
            occupied = self.total_stock(warehouse_id)
            if occupied > capacity:
                raise CapacityExceeded(warehouse_id, attempted=occupied, capacity=capacity)

            warehouse.name = name
            warehouse.capacity = capacity
            warehouse.save(using=self.using, update_fields=["name", "capacity"])

        logger.info("warehouse_updated", warehouse_id=warehouse_id, capacity=capacity)
        return warehouse

    @serialized(warehouse_key_template())
    def delete(self, warehouse_id: int) -> None:
        """Delete a warehouse together with all of its stock."""
        with atomic_operation("warehouse.delete", self.using):
            warehouse = self.get(warehouse_id, for_update=True)
            warehouse.delete(using=self.using)
        logger.info("warehouse_deleted", warehouse_id=warehouse_id)
