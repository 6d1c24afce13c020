from django.apps import AppConfig


class WarehouseLedgerConfig(AppConfig):
    name = "warehouse_ledger"
    verbose_name = "Warehouse ledger"
    default_auto_field = "django.db.models.BigAutoField"
