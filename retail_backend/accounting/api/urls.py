# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.views import (
    AccountActivationView,
    AccountListView,
    ExpenseListCreateView,
    JournalEntryViewSet,
    TrialBalanceView,
    VatPositionView,
)

router = DefaultRouter()
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")

urlpatterns = [
    path("", include(router.urls)),
    # Master data
    path("accounts/", AccountListView.as_view(), name="accounts"),
    path(
        "accounts/<str:code>/activate/",
        AccountActivationView.as_view(is_active=True),
        name="account-activate",
    ),
    path(
        "accounts/<str:code>/deactivate/",
        AccountActivationView.as_view(is_active=False),
        name="account-deactivate",
    ),
    # Posting actions
    path("expenses/", ExpenseListCreateView.as_view(), name="expenses"),
    # Reports
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("vat-position/", VatPositionView.as_view(), name="vat-position"),
]
