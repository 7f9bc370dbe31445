# payments/api/urls.py

from django.urls import path

from payments.api.views import (
    DiscountPreviewView,
    EntryDetailView,
    EntryListCreateView,
    PartySummaryView,
    PaymentDetailView,
    PaymentListCreateView,
    PaymentOptionsView,
    ReceiptCombinationsView,
)

urlpatterns = [
    path("entries/", EntryListCreateView.as_view(), name="payments-entries"),
    path("entries/<uuid:entry_id>/", EntryDetailView.as_view(), name="payments-entry-detail"),
    path("payments/", PaymentListCreateView.as_view(), name="payments-list"),
    path("payments/<uuid:payment_id>/", PaymentDetailView.as_view(), name="payments-detail"),
    path("discount-preview/", DiscountPreviewView.as_view(), name="payments-discount-preview"),
    path(
        "receipt-combinations/",
        ReceiptCombinationsView.as_view(),
        name="payments-receipt-combinations",
    ),
    path("payment-options/", PaymentOptionsView.as_view(), name="payments-options"),
    path(
        "parties/<uuid:party_id>/summary/",
        PartySummaryView.as_view(),
        name="payments-party-summary",
    ),
]
