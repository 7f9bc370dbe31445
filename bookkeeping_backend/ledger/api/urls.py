# ledger/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from ledger.api.views import AccountViewSet, PostingDetailView, PostingListCreateView

router = DefaultRouter()
router.register("accounts", AccountViewSet, basename="ledger-account")

urlpatterns = [
    path("", include(router.urls)),
    path("postings/", PostingListCreateView.as_view(), name="ledger-postings"),
    path(
        "postings/<int:posting_id>/",
        PostingDetailView.as_view(),
        name="ledger-posting-detail",
    ),
]
