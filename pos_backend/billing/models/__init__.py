# billing/models/__init__.py

from .credit_note import CreditNote
from .invoice import Invoice
from .invoice_item import InvoiceItem
from .receivable import AccountsReceivable
from .sequence import CreditNoteSequence

__all__ = [
    "Invoice",
    "InvoiceItem",
    "AccountsReceivable",
    "CreditNote",
    "CreditNoteSequence",
]
