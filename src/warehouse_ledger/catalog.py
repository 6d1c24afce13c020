"""Product catalog: product identity and SKU rules."""
from __future__ import annotations

import structlog
from django.db import IntegrityError, transaction

from .conf import ledger_setting
from .exceptions import DuplicateSKU, IdentityMismatch, InvalidSKU, ProductNotFound
from .models import SKU_MAX, SKU_MIN, SKU_UNSET, Product
from .transactions import atomic_operation
from .validators import require_count, require_name

logger = structlog.get_logger(__name__)


def is_valid_sku(sku: int) -> bool:
    """A SKU is either unset (0) or exactly eight decimal digits."""
    if isinstance(sku, bool) or not isinstance(sku, int):
        return False
    return sku == SKU_UNSET or SKU_MIN <= sku <= SKU_MAX


class ProductCatalog:
    def __init__(self, using: str | None = None) -> None:
        self.using = using or ledger_setting("DATABASE")

    def _products(self):
        return Product.objects.using(self.using)

    def all(self) -> list[Product]:
        return list(self._products())

    def exists(self, product_id: int) -> bool:
        return self._products().filter(pk=product_id).exists()

    def get(self, product_id: int) -> Product:
        try:
            return self._products().get(pk=product_id)
        except Product.DoesNotExist:
            raise ProductNotFound(product_id) from None

    def sku_in_use(self, sku: int, exclude_product_id: int | None = None) -> bool:
        """Whether another product already carries this SKU. 0 is never in use."""
        if sku == SKU_UNSET or not is_valid_sku(sku):
            return False
        qs = self._products().filter(sku=sku)
        if exclude_product_id is not None:
            qs = qs.exclude(pk=exclude_product_id)
        return qs.exists()

    def _check(self, name: str, price: int, sku: int, product_id: int | None = None) -> str:
        if self.sku_in_use(sku, exclude_product_id=product_id):
            raise DuplicateSKU(sku)
        if not is_valid_sku(sku):
            raise InvalidSKU(sku)
        name = require_name(name)
        require_count("price", price)
        return name

    def _save(self, product: Product) -> None:
        # A concurrent insert of the same SKU surfaces as a unique violation.
        try:
            with transaction.atomic(using=self.using):
                product.save(using=self.using)
        except IntegrityError:
            if product.sku != SKU_UNSET:
                raise DuplicateSKU(product.sku) from None
            raise

    def create(self, name: str, price: int, sku: int = SKU_UNSET) -> Product:
        with atomic_operation("product.create", self.using):
            name = self._check(name, price, sku)
            product = Product(name=name, price=price, sku=sku)
            self._save(product)
        logger.info("product_created", product_id=product.pk, sku=sku)
        return product

    def update(
        self,
        product_id: int,
        name: str,
        price: int,
        sku: int = SKU_UNSET,
        *,
        request_product_id: int | None = None,
    ) -> Product:
        if request_product_id is not None and request_product_id != product_id:
            raise IdentityMismatch(
                expected={"product_id": product_id},
                supplied={"product_id": request_product_id},
            )
        with atomic_operation("product.update", self.using):
            product = self.get(product_id)
            product.name = self._check(name, price, sku, product_id=product_id)
            product.price = price
            product.sku = sku
            self._save(product)
        logger.info("product_updated", product_id=product_id, sku=sku)
        return product

    def delete(self, product_id: int) -> None:
        """Delete a product together with its stock at every warehouse."""
        with atomic_operation("product.delete", self.using):
            self.get(product_id).delete(using=self.using)
        logger.info("product_deleted", product_id=product_id)
