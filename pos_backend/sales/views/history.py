# sales/views/history.py

from rest_framework import generics, viewsets
from rest_framework.permissions import IsAuthenticated

from permissions.roles import CAP_POS_REFUND, CAP_REPORTS_VIEW_POS, HasAnyCapability
from sales.filters import ReturnHistoryFilter
from sales.models import ReturnReason, SaleReturn
from sales.serializers import ReturnReasonSerializer, SaleReturnReadSerializer


class ReturnHistoryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Return history of the caller's organization (newest first).
    """

    serializer_class = SaleReturnReadSerializer
    filterset_class = ReturnHistoryFilter
    permission_classes = [IsAuthenticated, HasAnyCapability]
    required_any_capabilities = {CAP_POS_REFUND, CAP_REPORTS_VIEW_POS}

    def get_queryset(self):
        organization_id = getattr(self.request.user, "organization_id", None)
        return (
            SaleReturn.objects.filter(organization_id=organization_id)
            .select_related("sale", "sale__customer", "user")
            .order_by("-return_date")
        )


class ReturnReasonListView(generics.ListAPIView):
    """
    Active return reasons of the caller's organization.
    """

    serializer_class = ReturnReasonSerializer
    permission_classes = [IsAuthenticated, HasAnyCapability]
    required_any_capabilities = {CAP_POS_REFUND, CAP_REPORTS_VIEW_POS}
    pagination_class = None

    def get_queryset(self):
        organization_id = getattr(self.request.user, "organization_id", None)
        return ReturnReason.objects.filter(
            organization_id=organization_id, is_active=True
        ).order_by("name")
