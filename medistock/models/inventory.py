"""Medicine, aisle and stock-history data models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

EXPIRY_WARNING_DAYS = 30


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive values are taken as UTC; aware values are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class StockStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class ExpiryStatus(str, Enum):
    GOOD = "good"
    SOON = "soon"
    EXPIRED = "expired"


class HistoryActionType(str, Enum):
    ADDITION = "Ajout"
    MODIFICATION = "Modification"
    DELETION = "Suppression"
    ADJUSTMENT = "Ajustement"


# Labels written by the stock use-cases
STOCK_ADDED_ACTION = "Ajout de stock"
STOCK_REMOVED_ACTION = "Retrait de stock"
STOCK_SET_ACTION = "Stock ajusté"


@dataclass
class Medicine:
    name: str
    unit: str
    current_quantity: int
    max_quantity: int
    warning_threshold: int
    critical_threshold: int
    aisle_id: str
    id: Optional[str] = None
    description: Optional[str] = None
    dosage: Optional[str] = None
    form: Optional[str] = None
    reference: Optional[str] = None
    expiry_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.expiry_date = as_utc(self.expiry_date)
        self.created_at = as_utc(self.created_at)
        self.updated_at = as_utc(self.updated_at)

    @property
    def stock_status(self) -> StockStatus:
        if self.current_quantity <= self.critical_threshold:
            return StockStatus.CRITICAL
        if self.current_quantity <= self.warning_threshold:
            return StockStatus.WARNING
        return StockStatus.NORMAL

    @property
    def is_expiring_soon(self) -> bool:
        if self.expiry_date is None:
            return False
        return self.expiry_date <= utcnow() + timedelta(days=EXPIRY_WARNING_DAYS)

    @property
    def is_expired(self) -> bool:
        if self.expiry_date is None:
            return False
        return self.expiry_date <= utcnow()

    @property
    def expiry_status(self) -> Optional[ExpiryStatus]:
        if self.expiry_date is None:
            return None
        if self.is_expired:
            return ExpiryStatus.EXPIRED
        if self.is_expiring_soon:
            return ExpiryStatus.SOON
        return ExpiryStatus.GOOD

    def copy_with(self, **changes) -> "Medicine":
        return replace(self, **changes)


@dataclass
class Aisle:
    name: str
    id: Optional[str] = None
    description: Optional[str] = None
    color_hex: str = "#007AFF"
    icon: str = "pills"
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.created_at = as_utc(self.created_at)
        self.updated_at = as_utc(self.updated_at)

    def copy_with(self, **changes) -> "Aisle":
        return replace(self, **changes)


@dataclass
class HistoryEntry:
    medicine_id: str
    user_id: str
    action: str
    details: str
    id: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)
    metadata: Optional[dict[str, str]] = None

    def __post_init__(self) -> None:
        self.timestamp = as_utc(self.timestamp)


@dataclass
class User:
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None


@dataclass
class StockAlert:
    medicine_id: str
    medicine_name: str
    kind: str
    message: str
    current_quantity: int
    threshold: Optional[int] = None
    expiry_date: Optional[datetime] = None
    timestamp: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.expiry_date = as_utc(self.expiry_date)
        self.timestamp = as_utc(self.timestamp)
