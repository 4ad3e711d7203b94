# cashbox/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from cashbox.api.views import CashRegisterViewSet

router = DefaultRouter()
router.register("registers", CashRegisterViewSet, basename="cash-register")

urlpatterns = [
    path("", include(router.urls)),
]
