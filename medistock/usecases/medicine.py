"""Medicine use-cases: create, update, delete, read, search, paginate.

Every mutation is followed by one history entry. The medicine write comes
first; when the history write then fails, HistoryWriteError carries the
medicine that was persisted.
"""

from __future__ import annotations

import logging
from typing import Callable

from medistock.models.errors import (
    HistoryWriteError,
    InvalidAisleReferenceError,
    MediStockError,
    MedicineNotFoundError,
    TooManyMedicinesError,
)
from medistock.models.inventory import HistoryActionType, HistoryEntry, Medicine
from medistock.repositories.base import (
    DEFAULT_PAGE_SIZE,
    AisleRepository,
    MedicineRepository,
)
from medistock.usecases.base import UseCase
from medistock.usecases.history import HistoryRecorder
from medistock.validation import MAX_MEDICINES_PER_USER, sanitize_name, validate_medicine

logger = logging.getLogger(__name__)


def record_after_write(medicine: Medicine, write: Callable[[], HistoryEntry]) -> HistoryEntry:
    """Runs the history half of a mutation whose medicine half already succeeded."""
    try:
        return write()
    except MediStockError as e:
        logger.error("History write failed after saving %s: %s", medicine.id, e)
        raise HistoryWriteError(medicine, e) from e


class AddMedicineUseCase(UseCase):
    def __init__(
        self,
        medicines: MedicineRepository,
        aisles: AisleRepository,
        recorder: HistoryRecorder,
    ):
        self.medicines = medicines
        self.aisles = aisles
        self.recorder = recorder

    def execute(self, medicine: Medicine) -> Medicine:
        candidate = medicine.copy_with(id=None, name=sanitize_name(medicine.name))
        validate_medicine(candidate)
        if not self.aisles.aisle_exists(candidate.aisle_id):
            raise InvalidAisleReferenceError(candidate.aisle_id)
        if self.medicines.count_medicines() >= MAX_MEDICINES_PER_USER:
            raise TooManyMedicinesError(MAX_MEDICINES_PER_USER)

        saved = self.medicines.save_medicine(candidate)
        record_after_write(
            saved, lambda: self.recorder.medicine_action(HistoryActionType.ADDITION, saved)
        )
        return saved


class UpdateMedicineUseCase(UseCase):
    def __init__(
        self,
        medicines: MedicineRepository,
        aisles: AisleRepository,
        recorder: HistoryRecorder,
    ):
        self.medicines = medicines
        self.aisles = aisles
        self.recorder = recorder

    def execute(self, medicine: Medicine) -> Medicine:
        existing = self.medicines.get_medicine(medicine.id) if medicine.id else None
        if existing is None:
            raise MedicineNotFoundError()

        candidate = medicine.copy_with(
            name=sanitize_name(medicine.name), created_at=existing.created_at
        )
        # An unchanged expiry that has since passed must not block other edits
        validate_medicine(
            candidate, check_expiry=candidate.expiry_date != existing.expiry_date
        )
        if not self.aisles.aisle_exists(candidate.aisle_id):
            raise InvalidAisleReferenceError(candidate.aisle_id)

        saved = self.medicines.save_medicine(candidate)
        record_after_write(
            saved, lambda: self.recorder.medicine_action(HistoryActionType.MODIFICATION, saved)
        )
        return saved


class DeleteMedicineUseCase(UseCase):
    def __init__(self, medicines: MedicineRepository, recorder: HistoryRecorder):
        self.medicines = medicines
        self.recorder = recorder

    def execute(self, medicine_id: str) -> None:
        medicine = self.medicines.get_medicine(medicine_id)
        if medicine is None:
            raise MedicineNotFoundError()
        self.medicines.delete_medicine(medicine_id)
        record_after_write(
            medicine, lambda: self.recorder.medicine_action(HistoryActionType.DELETION, medicine)
        )


class GetMedicineUseCase(UseCase):
    def __init__(self, medicines: MedicineRepository):
        self.medicines = medicines

    def execute(self, medicine_id: str) -> Medicine:
        medicine = self.medicines.get_medicine(medicine_id)
        if medicine is None:
            raise MedicineNotFoundError()
        return medicine


class GetMedicinesUseCase(UseCase):
    def __init__(self, medicines: MedicineRepository):
        self.medicines = medicines

    def execute(self) -> list[Medicine]:
        return self.medicines.list_medicines()


class SearchMedicineUseCase(UseCase):
    """Case-insensitive match on name, reference or description."""

    def __init__(self, medicines: MedicineRepository):
        self.medicines = medicines

    def execute(self, query: str) -> list[Medicine]:
        return self.medicines.search_medicines(query or "")


class GetMedicinesPaginatedUseCase(UseCase):
    def __init__(self, medicines: MedicineRepository, page_size: int = DEFAULT_PAGE_SIZE):
        self.medicines = medicines
        self.page_size = page_size

    @property
    def has_more(self) -> bool:
        return self.medicines.has_more_medicines

    def execute(self, refresh: bool = False) -> list[Medicine]:
        return self.medicines.list_medicines_page(limit=self.page_size, refresh=refresh)
