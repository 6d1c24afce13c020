"""
Minimal Django setup for the test suite.

Uses an in-memory SQLite database by default. Set DATABASE_URL to a
PostgreSQL URL to run everything, including the real concurrency tests,
against PostgreSQL.
"""

import os
from urllib.parse import urlparse

import pytest


def _database_from_env() -> dict:
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        return {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}

    u = urlparse(database_url)
    if u.scheme not in {"postgres", "postgresql"}:
        raise pytest.UsageError(f"Unsupported DATABASE_URL scheme: {u.scheme!r}")

    return {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": (u.path or "").lstrip("/"),
        "USER": u.username or "",
        "PASSWORD": u.password or "",
        "HOST": u.hostname or "localhost",
        "PORT": str(u.port or 5432),
        "CONN_MAX_AGE": 0,
    }


def pytest_configure(config):
    from django.conf import settings

    if settings.configured:
        return

    settings.configure(
        SECRET_KEY="test",
        INSTALLED_APPS=["warehouse_ledger"],
        DATABASES={"default": _database_from_env()},
        ROOT_URLCONF="warehouse_ledger.urls",
        ALLOWED_HOSTS=["testserver"],
        TIME_ZONE="UTC",
        USE_TZ=True,
        WAREHOUSE_LEDGER={"LOCK_TIMEOUT": 1.0},
    )

    import django

    django.setup()


@pytest.fixture(scope="session", autouse=True)
def _migrated_db():
    from django.core.management import call_command

    call_command("migrate", "warehouse_ledger", verbosity=0, interactive=False)


@pytest.fixture(autouse=True)
def _clean_tables():
    """Tests commit for real (threads need to see the data), so wipe afterwards."""
    yield

    from warehouse_ledger.models import Product, Stock, Warehouse

    Stock.objects.all().delete()
    Product.objects.all().delete()
    Warehouse.objects.all().delete()


@pytest.fixture
def directory():
    from warehouse_ledger.directory import WarehouseDirectory

    return WarehouseDirectory()


@pytest.fixture
def catalog():
    from warehouse_ledger.catalog import ProductCatalog

    return ProductCatalog()


@pytest.fixture
def ledger(directory, catalog):
    from warehouse_ledger.ledger import StockLedger

    return StockLedger(directory=directory, catalog=catalog)


@pytest.fixture
def product(catalog):
    return catalog.create(name="Widget", price=1250, sku=12345678)


@pytest.fixture
def warehouse_a(directory):
    return directory.create(name="A", capacity=100)


@pytest.fixture
def warehouse_b(directory):
    return directory.create(name="B", capacity=50)
