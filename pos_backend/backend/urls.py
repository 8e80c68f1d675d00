# backend/urls.py
"""
PROJECT URLS

/api/auth/      JWT + current operator
/api/returns/   returnable sales, ProcessReturn, return history, reasons
/api/health/    DB connectivity probe (AllowAny)

The admin path comes from settings.ADMIN_PATH (default "admin/").
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db import DatabaseError, connections
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema, inline_serializer
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

RETURNS_ROUTES = {
    "returnable_sales": "/api/returns/sales/",
    "sale_ledger": "/api/returns/sales/{sale_id}/",
    "process_return": "/api/returns/sales/{sale_id}/process/",
    "history": "/api/returns/history/",
    "reasons": "/api/returns/reasons/",
}


@extend_schema(
    responses={
        200: inline_serializer(
            name="ApiRoot",
            fields={
                "message": serializers.CharField(),
                "auth": serializers.DictField(),
                "docs": serializers.DictField(),
                "returns": serializers.DictField(),
            },
        )
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response(
        {
            "message": "POS Returns Backend API is running",
            "auth": {
                "me": "/api/auth/me/",
                "jwt_create": "/api/auth/jwt/create/",
                "jwt_refresh": "/api/auth/jwt/refresh/",
            },
            "docs": {"swagger": "/api/docs/", "schema": "/api/schema/"},
            "returns": RETURNS_ROUTES,
        }
    )


@extend_schema(
    responses={
        200: inline_serializer(
            name="HealthCheck",
            fields={"status": serializers.CharField(), "db": serializers.CharField()},
        )
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """Responds 503 when the default database cannot answer SELECT 1."""
    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except DatabaseError as exc:
        return Response({"status": "degraded", "db": "down", "error": str(exc)}, status=503)

    return Response({"status": "ok", "db": "ok"})


ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"


api_urlpatterns = [
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    # OpenAPI
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    # Auth
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("auth/", include("users.urls")),
    # Returns engine
    path("returns/", include("sales.api.urls")),
]

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
