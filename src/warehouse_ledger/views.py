"""
JSON request surface.

Thin function views: each one parses plain values out of the request, calls
exactly one ledger, directory or catalog operation, and renders the result.
`LedgerError.status_code` decides the HTTP status of failures.
"""
from __future__ import annotations

import json
from functools import wraps

import structlog
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .catalog import ProductCatalog
from .directory import WarehouseDirectory
from .exceptions import InvalidValue, LedgerError
from .ledger import MOVE_ALL, StockLedger
from .models import Product, Stock, Warehouse

logger = structlog.get_logger(__name__)


def _json(payload, *, status: int = 200) -> JsonResponse:
    return JsonResponse(payload, status=status, safe=False)


def _error(exc: LedgerError) -> JsonResponse:
    payload = {"ok": False, "code": exc.code, "detail": str(exc), **exc.context()}
    if exc.retryable:
        payload["retryable"] = True
    return _json(payload, status=exc.status_code)


def _renders_ledger_errors(view):
    @wraps(view)
    def wrapper(request: HttpRequest, *args, **kwargs) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except LedgerError as exc:
            logger.info(
                "request_rejected",
                method=request.method,
                path=request.path,
                code=exc.code,
            )
            return _error(exc)

    return wrapper


def _body(request: HttpRequest) -> dict:
    try:
        data = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError):
        raise InvalidValue("body", None, "must be valid JSON") from None
    if not isinstance(data, dict):
        raise InvalidValue("body", data, "must be a JSON object")
    return data


def _int(data: dict, field: str, default: int | None = None) -> int:
    value = data.get(field, default)
    if value is None:
        raise InvalidValue(field, None, "is required")
    if isinstance(value, (bool, float)):
        raise InvalidValue(field, value, "must be an integer")
    if not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise InvalidValue(field, value, "must be an integer") from None
    return value


def _str(data: dict, field: str, default: str = "") -> str:
    value = data.get(field, default)
    if not isinstance(value, str):
        raise InvalidValue(field, value, "must be a string")
    return value


def _stock(stock: Stock) -> dict:
    return {
        "product_id": stock.product_id,
        "warehouse_id": stock.warehouse_id,
        "amount": stock.amount,
        "min_acceptable_stock": stock.min_acceptable_stock,
    }


def _product(product: Product) -> dict:
    return {"id": product.pk, "name": product.name, "price": product.price, "sku": product.sku}


def _warehouse(warehouse: Warehouse) -> dict:
    return {"id": warehouse.pk, "name": warehouse.name, "capacity": warehouse.capacity}


# Stock


@require_http_methods(["GET"])
def stock_list(request: HttpRequest) -> HttpResponse:
    return _json([_stock(s) for s in StockLedger().all()])


@csrf_exempt
@require_http_methods(["POST"])
@_renders_ledger_errors
def stock_create(request: HttpRequest) -> HttpResponse:
    data = _body(request)
    stock = StockLedger().create(
        product_id=_int(data, "product_id"),
        warehouse_id=_int(data, "warehouse_id"),
        amount=_int(data, "amount"),
        min_acceptable_stock=_int(data, "min_acceptable_stock", 0),
    )
    return _json(_stock(stock), status=201)


@require_http_methods(["GET"])
def stock_at_warehouse(request: HttpRequest, warehouse_id: int) -> HttpResponse:
    return _json([_stock(s) for s in StockLedger().all_at_warehouse(warehouse_id)])


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
@_renders_ledger_errors
def stock_detail(request: HttpRequest, warehouse_id: int, product_id: int) -> HttpResponse:
    ledger = StockLedger()

    if request.method == "GET":
        return _json(_stock(ledger.get(product_id, warehouse_id)))

    if request.method == "DELETE":
        ledger.delete(product_id, warehouse_id)
        return _json({"ok": True})

    data = _body(request)
    stock = ledger.update(
        product_id,
        warehouse_id,
        amount=_int(data, "amount"),
        min_acceptable_stock=_int(data, "min_acceptable_stock", 0),
        request_product_id=_int(data, "product_id", product_id),
        request_warehouse_id=_int(data, "warehouse_id", warehouse_id),
    )
    return _json(_stock(stock))


@csrf_exempt
@require_http_methods(["PUT"])
@_renders_ledger_errors
def stock_move(
    request: HttpRequest, from_warehouse_id: int, product_id: int, to_warehouse_id: int
) -> HttpResponse:
    """A missing or zero ?amount= moves everything held at the source."""
    amount = _int(request.GET, "amount", MOVE_ALL)
    source, destination = StockLedger().move(
        product_id, from_warehouse_id, to_warehouse_id, amount
    )
    return _json({"ok": True, "source": _stock(source), "destination": _stock(destination)})


# Products


@csrf_exempt
@require_http_methods(["GET", "POST"])
@_renders_ledger_errors
def product_collection(request: HttpRequest) -> HttpResponse:
    catalog = ProductCatalog()
    if request.method == "GET":
        return _json([_product(p) for p in catalog.all()])

    data = _body(request)
    if data.get("id") not in (None, 0):
        raise InvalidValue("id", data["id"], "must not be provided")
    product = catalog.create(
        name=_str(data, "name"),
        price=_int(data, "price", 0),
        sku=_int(data, "sku", 0),
    )
    return _json(_product(product), status=201)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
@_renders_ledger_errors
def product_detail(request: HttpRequest, product_id: int) -> HttpResponse:
    catalog = ProductCatalog()

    if request.method == "GET":
        return _json(_product(catalog.get(product_id)))

    if request.method == "DELETE":
        catalog.delete(product_id)
        return _json({"ok": True})

    data = _body(request)
    product = catalog.update(
        product_id,
        name=_str(data, "name"),
        price=_int(data, "price", 0),
        sku=_int(data, "sku", 0),
        request_product_id=_int(data, "id", product_id),
    )
    return _json(_product(product))


# Warehouses


@csrf_exempt
@require_http_methods(["GET", "POST"])
@_renders_ledger_errors
def warehouse_collection(request: HttpRequest) -> HttpResponse:
    directory = WarehouseDirectory()
    if request.method == "GET":
        return _json([_warehouse(w) for w in directory.all()])

    data = _body(request)
    warehouse = directory.create(name=_str(data, "name"), capacity=_int(data, "capacity", 0))
    return _json(_warehouse(warehouse), status=201)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
@_renders_ledger_errors
def warehouse_detail(request: HttpRequest, warehouse_id: int) -> HttpResponse:
    directory = WarehouseDirectory()

    if request.method == "GET":
        warehouse = directory.get(warehouse_id)
        payload = _warehouse(warehouse)
        payload["total_stock"] = directory.total_stock(warehouse_id)
        return _json(payload)

    if request.method == "DELETE":
        directory.delete(warehouse_id)
        return _json({"ok": True})

    data = _body(request)
    warehouse = directory.update(
        warehouse_id,
        name=_str(data, "name"),
        capacity=_int(data, "capacity"),
        request_warehouse_id=_int(data, "id", warehouse_id),
    )
    return _json(_warehouse(warehouse))
