# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for sales app models.
"""

from .customer import Customer
from .payment import Payment
from .return_reason import ReturnReason
from .sale import Sale
from .sale_item import SaleItem
from .sale_return import SaleReturn
from .settlement import SaleSettlement

__all__ = [
    "Customer",
    "Sale",
    "SaleItem",
    "Payment",
    "ReturnReason",
    "SaleReturn",
    "SaleSettlement",
]
