from django.db import models

SKU_UNSET = 0
SKU_MIN = 10_000_000
SKU_MAX = 99_999_999

NAME_MAX_LENGTH = 255
# Largest value an IntegerField column holds on every supported backend.
QUANTITY_MAX = 2**31 - 1


class Product(models.Model):
    """
    A catalog product. `sku` is 0 when no SKU is assigned; otherwise it is an
    8-digit code unique across products.
    """

    name = models.CharField(max_length=NAME_MAX_LENGTH)
    price = models.IntegerField(default=0)  # minor currency unit
    sku = models.IntegerField(default=SKU_UNSET)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["sku"],
                condition=~models.Q(sku=SKU_UNSET),
                name="product_sku_unique_when_set",
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="product_price_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} (#{self.pk})"


class Warehouse(models.Model):
    name = models.CharField(max_length=NAME_MAX_LENGTH)
    capacity = models.IntegerField(default=0)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(capacity__gte=0),
                name="warehouse_capacity_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} (#{self.pk}, capacity {self.capacity})"


class Stock(models.Model):
    """
    Units of one product held at one warehouse.

    At most one row exists per (product, warehouse). `min_acceptable_stock`
    is a stored reorder threshold; nothing acts on it.
    """

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="stock"
    )
    warehouse = models.ForeignKey(
        Warehouse, on_delete=models.CASCADE, related_name="stock"
    )
    amount = models.IntegerField(default=0)
    min_acceptable_stock = models.IntegerField(default=0)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "warehouse"],
                name="stock_product_warehouse_unique",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="stock_amount_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(min_acceptable_stock__gte=0),
                name="stock_min_acceptable_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"product {self.product_id} @ warehouse {self.warehouse_id} ({self.amount})"
