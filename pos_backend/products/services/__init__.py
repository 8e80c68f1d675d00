from .stock_returns import RestockLine, RestockResult, StockReturnError, restock_items

__all__ = [
    "RestockLine",
    "RestockResult",
    "StockReturnError",
    "restock_items",
]
