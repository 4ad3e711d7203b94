# products/urls.py

"""
PRODUCTS URLS

Purpose:
- Register product domain routes under /api/products/
    /products/              (catalog)
    /stock/adjust/          (stock ledger adjustment)
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import ProductViewSet, StockAdjustView

router = DefaultRouter()

router.register(r"products", ProductViewSet, basename="products")

urlpatterns = [
    path("", include(router.urls)),
    path("stock/adjust/", StockAdjustView.as_view(), name="stock-adjust"),
]
