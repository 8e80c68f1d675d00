from .cash_session import CashSessionError, find_open_session, record_movement

__all__ = ["CashSessionError", "find_open_session", "record_movement"]
