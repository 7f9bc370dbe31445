# backend/urls.py
"""
PROJECT URLS

Everything the clients call lives under /api/:

- /api/ledger/     accounts, postings, statements
- /api/payments/   outstanding entries, payments, calculators, party summary
- /api/health/     liveness + DB probe (public)
- /api/schema/, /api/docs/   OpenAPI
- /api/auth/jwt/   token pair

The admin mount point comes from ADMIN_PATH.
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db import DatabaseError, connection
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import OpenApiResponse, extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

API_INDEX = {
    "ledger": {
        "accounts": "/api/ledger/accounts/",
        "postings": "/api/ledger/postings/",
    },
    "payments": {
        "entries": "/api/payments/entries/",
        "payments": "/api/payments/payments/",
        "discount_preview": "/api/payments/discount-preview/",
        "receipt_combinations": "/api/payments/receipt-combinations/",
        "payment_options": "/api/payments/payment-options/",
    },
    "auth": {
        "jwt_create": "/api/auth/jwt/create/",
        "jwt_refresh": "/api/auth/jwt/refresh/",
    },
    "docs": {"swagger": "/api/docs/", "schema": "/api/schema/"},
}


@extend_schema(responses={200: OpenApiResponse(description="Endpoint index")})
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response({"message": "Bookkeeping Backend API", **API_INDEX})


def _database_ok() -> tuple[bool, str]:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        return False, str(exc)
    return True, ""


@extend_schema(
    responses={
        200: OpenApiResponse(description="App and database reachable"),
        503: OpenApiResponse(description="Database unreachable"),
    }
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    ok, error = _database_ok()
    if ok:
        return Response({"status": "ok", "db": "ok"})
    return Response(
        {"status": "degraded", "db": "down", "error": error},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/").rstrip("/") + "/"

api_urlpatterns = [
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("ledger/", include("ledger.api.urls")),
    path("payments/", include("payments.api.urls")),
]

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
