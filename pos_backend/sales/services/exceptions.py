# sales/services/exceptions.py

"""
RETURNS SERVICE ERRORS

Centralized domain errors for the returns / settlement engine.

Severity:
- ReturnValidationError, NotFound: raised before anything is written
- SettlementWriteError: a balance write failed (warning, except the
  credit-note document write which is fatal)
- AuditWriteError: the return record could not be written (fatal)
- SideEffectError: logged only, never reaches the caller
- PartialData: a read note, never raised to the caller
"""

from __future__ import annotations


class ReturnsError(Exception):
    """Base exception for all returns service failures."""


class ReturnValidationError(ReturnsError):
    """Raised when a refund request is rejected. Nothing was mutated."""

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class NotFound(ReturnsError):
    """Raised when a required record does not exist in the caller's scope."""


class SaleNotFound(NotFound):
    """Raised when the sale is missing in the caller's organization."""


class InvoiceNotFound(NotFound):
    """Raised when no original invoice exists for a sale being fully settled."""


class PartialData(ReturnsError):
    """A related row could not be resolved; reads continue with placeholders."""


class SettlementWriteError(ReturnsError):
    """Raised when a settlement write (balance / status / document) fails."""


class AuditWriteError(ReturnsError):
    """Raised when the SaleReturn record could not be written."""


class SideEffectError(ReturnsError):
    """Raised inside the side-effect dispatcher; always caught and logged."""


class SettlementInProgressError(ReturnsError):
    """Raised when another settlement on the same sale is still running."""
