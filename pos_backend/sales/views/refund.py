# sales/views/refund.py

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import (
    CAP_POS_REFUND,
    CAP_REPORTS_VIEW_POS,
    HasAnyCapability,
    HasCapability,
)
from sales.filters import SaleForReturnFilter
from sales.models import Sale
from sales.serializers import (
    ProcessReturnCommandSerializer,
    ReturnOutcomeSerializer,
    SaleForReturnSerializer,
    SaleLedgerSerializer,
)
from sales.services.exceptions import (
    AuditWriteError,
    NotFound,
    ReturnValidationError,
    SettlementInProgressError,
    SettlementWriteError,
)
from sales.services.ledger_reader import read_sale_ledger
from sales.services.refund_orchestrator import process_return


# ======================================================
# API ERROR NORMALIZATION
# ======================================================

def error_response(*, code: str, message: str, http_status: int, details=None):
    """
    Canonical API error response.
    """
    body = {"error": {"code": code, "message": message}}
    if details:
        body["error"]["details"] = details
    return Response(body, status=http_status)


# ======================================================
# SALES FOR RETURN (READ + PROCESS)
# ======================================================

class ReturnableSaleViewSet(
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    """
    Sales eligible for return + ProcessReturn.

    - list: organization sales that are not void (filters via django-filter)
    - retrieve: ledger view (items with returned / returnable quantities)
    - process: protected capability (pos.refund)
    """

    serializer_class = SaleForReturnSerializer
    filterset_class = SaleForReturnFilter
    permission_classes = [IsAuthenticated]

    required_capability = None
    required_any_capabilities = {CAP_POS_REFUND, CAP_REPORTS_VIEW_POS}

    def get_permissions(self):
        """
        Action-specific permissions.

        - process requires CAP_POS_REFUND
        - list/retrieve require refund or POS report visibility
        """
        if self.action == "process":
            self.required_capability = CAP_POS_REFUND
            return [IsAuthenticated(), HasCapability()]

        return [IsAuthenticated(), HasAnyCapability()]

    def get_queryset(self):
        organization_id = getattr(self.request.user, "organization_id", None)
        return (
            Sale.objects.filter(organization_id=organization_id)
            .exclude(status=Sale.STATUS_VOID)
            .select_related("customer", "branch")
            .order_by("-sale_date")
        )

    def get_serializer_class(self):
        if self.action == "process":
            return ProcessReturnCommandSerializer
        return SaleForReturnSerializer

    # --------------------------------------------------
    # LEDGER VIEW
    # --------------------------------------------------

    @extend_schema(responses={200: SaleLedgerSerializer})
    def retrieve(self, request, pk=None):
        try:
            ledger = read_sale_ledger(pk, getattr(request.user, "organization", None))
        except NotFound as exc:
            return error_response(
                code="NOT_FOUND",
                message=str(exc),
                http_status=status.HTTP_404_NOT_FOUND,
            )

        return Response(SaleLedgerSerializer(ledger).data, status=status.HTTP_200_OK)

    # --------------------------------------------------
    # PROCESS RETURN
    # --------------------------------------------------

    @extend_schema(
        request=ProcessReturnCommandSerializer,
        responses={201: ReturnOutcomeSerializer},
        description="Return some or all items of a sale and settle the refund.",
    )
    @action(detail=True, methods=["post"], url_path="process")
    def process(self, request, pk=None):
        command = ProcessReturnCommandSerializer(
            data=request.data,
            context={"request": request},
        )
        if not command.is_valid():
            return error_response(
                code="VALIDATION_ERROR",
                message="Invalid return request.",
                http_status=status.HTTP_400_BAD_REQUEST,
                details=command.errors,
            )

        try:
            outcome = process_return(pk, command.to_refund_request(), request.user)

        except ReturnValidationError as exc:
            return error_response(
                code="VALIDATION_ERROR",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
                details=exc.messages,
            )

        except NotFound as exc:
            return error_response(
                code="NOT_FOUND",
                message=str(exc),
                http_status=status.HTTP_404_NOT_FOUND,
            )

        except SettlementInProgressError as exc:
            return error_response(
                code="SETTLEMENT_IN_PROGRESS",
                message=str(exc),
                http_status=status.HTTP_409_CONFLICT,
            )

        except DjangoPermissionDenied as exc:
            return error_response(
                code="PERMISSION_DENIED",
                message=str(exc),
                http_status=status.HTTP_403_FORBIDDEN,
            )

        except SettlementWriteError as exc:
            return error_response(
                code="SETTLEMENT_FAILED",
                message=str(exc),
                http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        except AuditWriteError as exc:
            return error_response(
                code="RETURN_NOT_RECORDED",
                message=(
                    "Balances may already be adjusted but the return could not be "
                    f"recorded. Reconciliation required. ({exc})"
                ),
                http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response(
            ReturnOutcomeSerializer(outcome, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )
