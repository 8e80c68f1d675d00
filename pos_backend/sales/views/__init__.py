from .history import ReturnHistoryViewSet, ReturnReasonListView
from .refund import ReturnableSaleViewSet, error_response

__all__ = [
    "ReturnHistoryViewSet",
    "ReturnReasonListView",
    "ReturnableSaleViewSet",
    "error_response",
]
