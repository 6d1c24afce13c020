import pytest
from django.db import DatabaseError

from warehouse_ledger.exceptions import (
    CapacityExceeded,
    IdentityMismatch,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
    StockAlreadyExists,
    StockNotFound,
    StorageFailure,
    WarehouseNotFound,
)
from warehouse_ledger.ledger import MOVE_ALL
from warehouse_ledger.models import Stock


def _occupancy_within_capacity(directory):
    return all(directory.total_stock(w.pk) <= w.capacity for w in directory.all())


# Reads


def test_get_after_create_returns_supplied_values(ledger, product, warehouse_a):
    ledger.create(product.pk, warehouse_a.pk, amount=10, min_acceptable_stock=2)

    stock = ledger.get(product.pk, warehouse_a.pk)
    assert (stock.amount, stock.min_acceptable_stock) == (10, 2)
    assert ledger.exists(product.pk, warehouse_a.pk)


def test_all_at_warehouse_filters_and_tolerates_unknown_ids(
    ledger, catalog, product, warehouse_a, warehouse_b
):
    other = catalog.create(name="Gadget", price=0)
    ledger.create(product.pk, warehouse_a.pk, 1)
    ledger.create(other.pk, warehouse_a.pk, 2)
    ledger.create(product.pk, warehouse_b.pk, 3)

    assert sorted(s.amount for s in ledger.all_at_warehouse(warehouse_a.pk)) == [1, 2]
    assert ledger.all_at_warehouse(999_999) == []
    assert len(ledger.all()) == 3


def test_get_missing_pair_raises_not_found(ledger, product, warehouse_a):
    assert not ledger.exists(product.pk, warehouse_a.pk)
    with pytest.raises(StockNotFound) as info:
        ledger.get(product.pk, warehouse_a.pk)
    assert info.value.status_code == 404


# Create


def test_create_over_capacity_fails(ledger, catalog, product, warehouse_a):
    other = catalog.create(name="Gadget", price=5)
    ledger.create(product.pk, warehouse_a.pk, 90)

    with pytest.raises(CapacityExceeded) as info:
        ledger.create(other.pk, warehouse_a.pk, 20)

    assert (info.value.attempted, info.value.capacity) == (110, 100)
    assert not ledger.exists(other.pk, warehouse_a.pk)


def test_create_up_to_exact_capacity_is_allowed(ledger, product, warehouse_b, directory):
    ledger.create(product.pk, warehouse_b.pk, 50)
    assert directory.total_stock(warehouse_b.pk) == 50


def test_create_check_order(ledger, product, warehouse_a):
    ledger.create(product.pk, warehouse_a.pk, 1)

    # Existing pair wins over the capacity check.
    with pytest.raises(StockAlreadyExists):
        ledger.create(product.pk, warehouse_a.pk, 10_000)

    # Unknown warehouse is reported before unknown product.
    with pytest.raises(WarehouseNotFound):
        ledger.create(424242, 434343, 1)

    with pytest.raises(ProductNotFound):
        ledger.create(424242, warehouse_a.pk, 1)


def test_create_rejects_negative_quantities(ledger, product, warehouse_a):
    with pytest.raises(InvalidQuantity):
        ledger.create(product.pk, warehouse_a.pk, -1)
    with pytest.raises(InvalidQuantity):
        ledger.create(product.pk, warehouse_a.pk, 1, min_acceptable_stock=-1)


def test_create_rejects_quantities_beyond_the_column_range(ledger, product, warehouse_a):
    with pytest.raises(InvalidQuantity) as info:
        ledger.create(product.pk, warehouse_a.pk, 1, min_acceptable_stock=2**31)
    assert not info.value.retryable
    with pytest.raises(InvalidQuantity):
        ledger.update(product.pk, warehouse_a.pk, 2**31)
    assert not ledger.exists(product.pk, warehouse_a.pk)


# Update


def test_update_replaces_amount_and_frees_capacity(ledger, directory, product, warehouse_a):
    ledger.create(product.pk, warehouse_a.pk, 10, 2)
    before = directory.total_stock(warehouse_a.pk)

    ledger.update(product.pk, warehouse_a.pk, 7, 2)

    assert ledger.get(product.pk, warehouse_a.pk).amount == 7
    assert directory.total_stock(warehouse_a.pk) == before - 3


def test_update_checks_capacity_using_the_delta(ledger, catalog, product, warehouse_a):
    other = catalog.create(name="Gadget", price=5)
    ledger.create(product.pk, warehouse_a.pk, 60)
    ledger.create(other.pk, warehouse_a.pk, 30)

    ledger.update(product.pk, warehouse_a.pk, 70)

    with pytest.raises(CapacityExceeded) as info:
        ledger.update(product.pk, warehouse_a.pk, 71)
    assert info.value.attempted == 101
    assert ledger.get(product.pk, warehouse_a.pk).amount == 70


def test_update_missing_pair(ledger, product, warehouse_a):
    with pytest.raises(StockNotFound):
        ledger.update(product.pk, warehouse_a.pk, 1)


def test_update_identity_mismatch_comes_first(ledger, product, warehouse_a):
    # The pair doesn't even exist; the id mismatch is still reported first.
    with pytest.raises(IdentityMismatch) as info:
        ledger.update(
            product.pk,
            warehouse_a.pk,
            -5,
            request_product_id=product.pk + 1,
        )
    assert info.value.supplied["product_id"] == product.pk + 1


# Delete


def test_delete_removes_record_and_occupancy(ledger, directory, product, warehouse_a):
    ledger.create(product.pk, warehouse_a.pk, 40)
    ledger.delete(product.pk, warehouse_a.pk)

    assert not ledger.exists(product.pk, warehouse_a.pk)
    assert directory.total_stock(warehouse_a.pk) == 0

    with pytest.raises(StockNotFound):
        ledger.delete(product.pk, warehouse_a.pk)


# Move


def test_move_conserves_units(ledger, product, warehouse_a, warehouse_b):
    ledger.create(product.pk, warehouse_a.pk, 30)
    ledger.create(product.pk, warehouse_b.pk, 5)

    source, destination = ledger.move(product.pk, warehouse_a.pk, warehouse_b.pk, 12)

    assert source.amount == 18
    assert destination.amount == 17
    assert ledger.get(product.pk, warehouse_a.pk).amount == 18
    assert ledger.get(product.pk, warehouse_b.pk).amount == 17


def test_move_creates_destination_with_zero_threshold(ledger, product, warehouse_a, warehouse_b):
    ledger.create(product.pk, warehouse_a.pk, 10, min_acceptable_stock=4)

    ledger.move(product.pk, warehouse_a.pk, warehouse_b.pk, 6)

    destination = ledger.get(product.pk, warehouse_b.pk)
    assert (destination.amount, destination.min_acceptable_stock) == (6, 0)


def test_zero_amount_moves_everything_and_keeps_empty_source(
    ledger, product, warehouse_a, warehouse_b
):
    ledger.create(product.pk, warehouse_a.pk, 9)

    ledger.move(product.pk, warehouse_a.pk, warehouse_b.pk, MOVE_ALL)

    assert ledger.get(product.pk, warehouse_a.pk).amount == 0
    assert ledger.exists(product.pk, warehouse_a.pk)
    assert ledger.get(product.pk, warehouse_b.pk).amount == 9


def test_zero_amount_matches_explicit_full_amount(
    ledger, directory, catalog, warehouse_a, warehouse_b
):
    p1 = catalog.create(name="One", price=1)
    p2 = catalog.create(name="Two", price=1)
    ledger.create(p1.pk, warehouse_a.pk, 7)
    ledger.create(p2.pk, warehouse_a.pk, 7)

    ledger.move(p1.pk, warehouse_a.pk, warehouse_b.pk, 0)
    ledger.move(p2.pk, warehouse_a.pk, warehouse_b.pk, 7)

    for p in (p1, p2):
        assert ledger.get(p.pk, warehouse_a.pk).amount == 0
        assert ledger.get(p.pk, warehouse_b.pk).amount == 7


def test_move_over_destination_capacity_fails(ledger, catalog, product, warehouse_a, warehouse_b):
    filler = catalog.create(name="Filler", price=0)
    ledger.create(product.pk, warehouse_a.pk, 10)
    ledger.create(filler.pk, warehouse_b.pk, 45)

    with pytest.raises(CapacityExceeded) as info:
        ledger.move(product.pk, warehouse_a.pk, warehouse_b.pk, 10)

    assert (info.value.warehouse_id, info.value.attempted, info.value.capacity) == (
        warehouse_b.pk,
        55,
        50,
    )
    assert ledger.get(product.pk, warehouse_a.pk).amount == 10
    assert not ledger.exists(product.pk, warehouse_b.pk)


def test_move_more_than_available_fails(ledger, product, warehouse_a, warehouse_b):
    ledger.create(product.pk, warehouse_a.pk, 5)

    with pytest.raises(InsufficientStock) as info:
        ledger.move(product.pk, warehouse_a.pk, warehouse_b.pk, 8)

    assert (info.value.available, info.value.requested) == (5, 8)
    assert ledger.get(product.pk, warehouse_a.pk).amount == 5


def test_move_from_missing_source(ledger, product, warehouse_a, warehouse_b):
    with pytest.raises(StockNotFound):
        ledger.move(product.pk, warehouse_a.pk, warehouse_b.pk, 1)


def test_move_to_unknown_warehouse(ledger, product, warehouse_a):
    ledger.create(product.pk, warehouse_a.pk, 5)

    with pytest.raises(WarehouseNotFound):
        ledger.move(product.pk, warehouse_a.pk, 999_999, 1)
    assert ledger.get(product.pk, warehouse_a.pk).amount == 5


def test_move_negative_amount(ledger, product, warehouse_a, warehouse_b):
    ledger.create(product.pk, warehouse_a.pk, 5)
    with pytest.raises(InvalidQuantity):
        ledger.move(product.pk, warehouse_a.pk, warehouse_b.pk, -2)


def test_move_within_same_warehouse_is_a_no_op(ledger, directory, product, warehouse_a):
    ledger.create(product.pk, warehouse_a.pk, 60)

    source, destination = ledger.move(product.pk, warehouse_a.pk, warehouse_a.pk, 40)

    assert source is destination
    assert ledger.get(product.pk, warehouse_a.pk).amount == 60
    assert directory.total_stock(warehouse_a.pk) == 60


def test_move_within_a_full_warehouse_checks_capacity(ledger, directory, product, warehouse_a):
    ledger.create(product.pk, warehouse_a.pk, 100)

    with pytest.raises(CapacityExceeded) as info:
        ledger.move(product.pk, warehouse_a.pk, warehouse_a.pk, 40)

    assert (info.value.attempted, info.value.capacity) == (140, 100)
    assert ledger.get(product.pk, warehouse_a.pk).amount == 100
    assert directory.total_stock(warehouse_a.pk) == 100


def test_capacity_holds_over_a_sequence_of_operations(
    ledger, directory, catalog, product, warehouse_a, warehouse_b
):
    other = catalog.create(name="Gadget", price=5)
    steps = [
        lambda: ledger.create(product.pk, warehouse_a.pk, 80),
        lambda: ledger.create(other.pk, warehouse_a.pk, 30),
        lambda: ledger.create(other.pk, warehouse_a.pk, 20),
        lambda: ledger.move(product.pk, warehouse_a.pk, warehouse_b.pk, 60),
        lambda: ledger.move(other.pk, warehouse_a.pk, warehouse_b.pk, 0),
        lambda: ledger.update(product.pk, warehouse_a.pk, 90),
        lambda: ledger.update(product.pk, warehouse_a.pk, 60),
        lambda: ledger.move(other.pk, warehouse_b.pk, warehouse_a.pk, 0),
    ]
    for step in steps:
        try:
            step()
        except (CapacityExceeded, InsufficientStock):
            pass
        assert _occupancy_within_capacity(directory)
        assert all(s.amount >= 0 for s in ledger.all())


# Storage failures


def test_failed_write_rolls_back_the_whole_move(
    monkeypatch, ledger, product, warehouse_a, warehouse_b
):
    ledger.create(product.pk, warehouse_a.pk, 10)

    original_save = Stock.save
    calls = []

    def flaky_save(self, *args, **kwargs):
        calls.append(self.warehouse_id)
        if len(calls) == 2:
            raise DatabaseError("disk full")
        return original_save(self, *args, **kwargs)

    monkeypatch.setattr(Stock, "save", flaky_save)

    with pytest.raises(StorageFailure) as info:
        ledger.move(product.pk, warehouse_a.pk, warehouse_b.pk, 4)

    monkeypatch.undo()

    assert info.value.retryable
    assert info.value.operation == "stock.move"
    assert isinstance(info.value.__cause__, DatabaseError)
    assert ledger.get(product.pk, warehouse_a.pk).amount == 10
    assert not ledger.exists(product.pk, warehouse_b.pk)
