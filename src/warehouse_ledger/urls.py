from django.urls import path

from . import views

app_name = "warehouse_ledger"

urlpatterns = [
    path("stock/all/", views.stock_list, name="stock_list"),
    path("stock/", views.stock_create, name="stock_create"),
    path("stock/<int:warehouse_id>/", views.stock_at_warehouse, name="stock_at_warehouse"),
    path(
        "stock/<int:warehouse_id>/<int:product_id>/",
        views.stock_detail,
        name="stock_detail",
    ),
    path(
        "stock/<int:from_warehouse_id>/<int:product_id>/move/<int:to_warehouse_id>/",
        views.stock_move,
        name="stock_move",
    ),
    path("products/", views.product_collection, name="product_collection"),
    path("products/<int:product_id>/", views.product_detail, name="product_detail"),
    path("warehouses/", views.warehouse_collection, name="warehouse_collection"),
    path("warehouses/<int:warehouse_id>/", views.warehouse_detail, name="warehouse_detail"),
]
