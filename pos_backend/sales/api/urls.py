# sales/api/urls.py

"""
RETURNS API URLS (CANONICAL)

Mounted at /api/returns/ via backend/urls.py.

Provides:
- GET  /api/returns/sales/                  sales eligible for return
- GET  /api/returns/sales/<uuid>/           sale ledger view
- POST /api/returns/sales/<uuid>/process/   ProcessReturn
- GET  /api/returns/history/                return history
- GET  /api/returns/history/<uuid>/         one return
- GET  /api/returns/reasons/                active return reasons

Rules:
- Explicit non-PK routes MUST be registered BEFORE router URLs.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.views import ReturnableSaleViewSet, ReturnHistoryViewSet, ReturnReasonListView

router = DefaultRouter()
router.register(r"sales", ReturnableSaleViewSet, basename="returns-sales")
router.register(r"history", ReturnHistoryViewSet, basename="returns-history")

urlpatterns = [
    path("reasons/", ReturnReasonListView.as_view(), name="returns-reasons"),
    path("", include(router.urls)),
]
