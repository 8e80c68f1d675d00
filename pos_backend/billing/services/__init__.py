from .invoice_lookup import find_original_invoice
from .numbering import format_credit_note_number, next_credit_note_number

__all__ = [
    "find_original_invoice",
    "format_credit_note_number",
    "next_credit_note_number",
]
