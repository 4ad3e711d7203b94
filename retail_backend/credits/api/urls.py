# credits/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from credits.api.views import CreditSummaryView, CustomerViewSet

router = DefaultRouter()
router.register("customers", CustomerViewSet, basename="customer")

urlpatterns = [
    path("", include(router.urls)),
    path("summary/", CreditSummaryView.as_view(), name="credit-summary"),
]
