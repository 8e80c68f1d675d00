from .cash_movement import CashMovement
from .cash_session import CashSession

__all__ = ["CashSession", "CashMovement"]
