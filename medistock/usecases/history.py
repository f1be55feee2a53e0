"""Audit history: entry construction and read use-cases."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from medistock.models.errors import InvalidIdError
from medistock.models.inventory import (
    Aisle,
    HistoryActionType,
    HistoryEntry,
    Medicine,
    as_utc,
)
from medistock.repositories.base import DEFAULT_HISTORY_LIMIT, HistoryRepository
from medistock.usecases.base import UseCase

logger = logging.getLogger(__name__)


class HistoryRecorder:
    """Builds and appends history entries for every mutation of the inventory.

    Aisle entries have no medicine; their ``medicine_id`` is empty and the
    aisle id travels in the metadata instead.
    """

    def __init__(self, history: HistoryRepository):
        self.history = history

    @property
    def user_id(self) -> str:
        return self.history.user_id

    def record(
        self,
        medicine_id: str,
        action: str,
        details: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            medicine_id=medicine_id,
            user_id=self.user_id,
            action=action,
            details=details,
            metadata=metadata,
        )
        saved = self.history.add_entry(entry)
        logger.debug("History: %s (%s)", action, medicine_id or "-")
        return saved

    def medicine_action(self, action: HistoryActionType, medicine: Medicine) -> HistoryEntry:
        if action == HistoryActionType.DELETION:
            details = f"Médicament supprimé: {medicine.name}"
        else:
            details = f"Médicament: {medicine.name}"
        return self.record(medicine.id or "", action.value, details)

    def aisle_action(self, action: HistoryActionType, aisle: Aisle) -> HistoryEntry:
        if action == HistoryActionType.DELETION:
            details = f"Suppression du rayon {aisle.name}"
        else:
            details = f"Rayon: {aisle.name}"
        return self.record("", action.value, details, metadata={"aisleId": aisle.id or ""})

    def stock_change(
        self,
        medicine: Medicine,
        action: str,
        details: str,
        previous_quantity: int,
        new_quantity: int,
    ) -> HistoryEntry:
        return self.record(
            medicine.id or "",
            action,
            details,
            metadata={
                "previousQuantity": str(previous_quantity),
                "newQuantity": str(new_quantity),
            },
        )


class GetHistoryUseCase(UseCase):
    def __init__(self, history: HistoryRepository):
        self.history = history

    def execute(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[HistoryEntry]:
        return self.history.list_history(start=as_utc(start), end=as_utc(end), limit=limit)


class GetHistoryForMedicineUseCase(UseCase):
    def __init__(self, history: HistoryRepository):
        self.history = history

    def execute(self, medicine_id: str) -> list[HistoryEntry]:
        if not (medicine_id or "").strip():
            raise InvalidIdError()
        return self.history.list_for_medicine(medicine_id)


class GetRecentHistoryUseCase(UseCase):
    def __init__(self, history: HistoryRepository):
        self.history = history

    def execute(self, limit: int = 10) -> list[HistoryEntry]:
        return self.history.list_recent(max(limit, 0))
