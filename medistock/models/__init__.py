from medistock.models.inventory import (
    Aisle,
    ExpiryStatus,
    HistoryActionType,
    HistoryEntry,
    Medicine,
    StockAlert,
    StockStatus,
    User,
)

__all__ = [
    "Aisle",
    "ExpiryStatus",
    "HistoryActionType",
    "HistoryEntry",
    "Medicine",
    "StockAlert",
    "StockStatus",
    "User",
]
