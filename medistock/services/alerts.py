"""Stock alerts - critical stock and upcoming expiries.

- Critical stock: critical_threshold > 0 and current_quantity <= critical_threshold
- Expiring: expiry date within the next ``expiry_days`` days
- Expired: expiry date already passed
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from medistock.models.inventory import Medicine, StockAlert, as_utc, utcnow
from medistock.repositories.base import MedicineRepository

logger = logging.getLogger(__name__)

ALERT_CRITICAL_STOCK = "critical_stock"
ALERT_EXPIRING = "expiration"
ALERT_EXPIRED = "expired"

DEFAULT_EXPIRY_ALERT_DAYS = 7


class StockAlertService:
    """Scans a user's medicines and reports the ones needing attention."""

    def __init__(self, medicines: MedicineRepository, expiry_days: int = DEFAULT_EXPIRY_ALERT_DAYS):
        if expiry_days < 0:
            raise ValueError("expiry_days cannot be negative")
        self.medicines = medicines
        self.expiry_days = expiry_days

    def check(self, now: Optional[datetime] = None) -> list[StockAlert]:
        now = as_utc(now) or utcnow()
        alerts: list[StockAlert] = []
        for medicine in self.medicines.list_medicines():
            alerts.extend(self.alerts_for(medicine, now))
        if alerts:
            logger.info(
                "%d alerts for %s (%d medicines checked)",
                len(alerts), self.medicines.user_id, len({a.medicine_id for a in alerts}),
            )
        return alerts

    def alerts_for(self, medicine: Medicine, now: datetime) -> list[StockAlert]:
        alerts: list[StockAlert] = []
        if medicine.critical_threshold > 0 and medicine.current_quantity <= medicine.critical_threshold:
            alerts.append(StockAlert(
                medicine_id=medicine.id or "",
                medicine_name=medicine.name,
                kind=ALERT_CRITICAL_STOCK,
                message=f"{medicine.name} - Stock: {medicine.current_quantity}/{medicine.critical_threshold}",
                current_quantity=medicine.current_quantity,
                threshold=medicine.critical_threshold,
                timestamp=now,
            ))

        expiry = medicine.expiry_date
        if expiry is None:
            return alerts
        if expiry < now:
            kind = ALERT_EXPIRED
            message = f"{medicine.name} a expiré le {expiry.strftime('%d/%m/%Y')}"
        elif expiry <= now + timedelta(days=self.expiry_days):
            kind = ALERT_EXPIRING
            message = f"{medicine.name} expire le {expiry.strftime('%d/%m/%Y')}"
        else:
            return alerts
        alerts.append(StockAlert(
            medicine_id=medicine.id or "",
            medicine_name=medicine.name,
            kind=kind,
            message=message,
            current_quantity=medicine.current_quantity,
            expiry_date=expiry,
            timestamp=now,
        ))
        return alerts
