# sales/api/urls.py

"""
SALES API URLS

Mounted at /api/sales/ by backend/urls.py:
    GET|POST /api/sales/
    GET      /api/sales/<uuid>/
    POST     /api/sales/<uuid>/cancel/
    POST     /api/sales/<uuid>/retry/
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from sales.api.views import SaleViewSet

router = SimpleRouter()
router.register(r"", SaleViewSet, basename="sale")

urlpatterns = [
    path("", include(router.urls)),
]
