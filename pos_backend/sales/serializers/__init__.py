from .refund_command import ProcessReturnCommandSerializer, ReturnItemInputSerializer
from .refund_read import (
    ReturnOutcomeSerializer,
    ReturnReasonSerializer,
    SaleReturnReadSerializer,
)
from .sale import SaleForReturnSerializer, SaleLedgerSerializer

__all__ = [
    "ProcessReturnCommandSerializer",
    "ReturnItemInputSerializer",
    "ReturnOutcomeSerializer",
    "ReturnReasonSerializer",
    "SaleReturnReadSerializer",
    "SaleForReturnSerializer",
    "SaleLedgerSerializer",
]
