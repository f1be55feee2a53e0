"""Stock movements.

- AdjustStockUseCase: relative change (+/-) with a reason
- UpdateMedicineStockUseCase: absolute quantity with a comment

Both write the medicine first and the history entry second. The two writes
are not transactional; a failed history write raises HistoryWriteError with
the already persisted medicine.
"""

from __future__ import annotations

import logging

from medistock.models.errors import (
    InvalidAmountError,
    InvalidMaxQuantityError,
    InvalidQuantityError,
    MedicineNotFoundError,
)
from medistock.models.inventory import (
    STOCK_ADDED_ACTION,
    STOCK_REMOVED_ACTION,
    STOCK_SET_ACTION,
    Medicine,
    utcnow,
)
from medistock.repositories.base import MedicineRepository
from medistock.usecases.base import UseCase
from medistock.usecases.history import HistoryRecorder
from medistock.usecases.medicine import record_after_write

logger = logging.getLogger(__name__)


class AdjustStockUseCase(UseCase):
    """Adds or withdraws units.

    A withdrawal may not leave the stock below the critical threshold unless
    ``allow_below_critical`` is set; a negative result is always rejected.
    """

    def __init__(
        self,
        medicines: MedicineRepository,
        recorder: HistoryRecorder,
        allow_below_critical: bool = False,
    ):
        self.medicines = medicines
        self.recorder = recorder
        self.allow_below_critical = allow_below_critical

    def execute(self, medicine_id: str, adjustment: int, reason: str) -> Medicine:
        medicine = self.medicines.get_medicine(medicine_id)
        if medicine is None:
            raise MedicineNotFoundError()
        if adjustment == 0:
            raise InvalidAmountError()

        previous = medicine.current_quantity
        new_quantity = previous + adjustment
        if new_quantity < 0:
            raise InvalidQuantityError()
        if (
            adjustment < 0
            and new_quantity < medicine.critical_threshold
            and not self.allow_below_critical
        ):
            raise InvalidQuantityError(
                f"Ce retrait ferait passer le stock ({new_quantity}) sous le seuil "
                f"critique ({medicine.critical_threshold})."
            )
        if new_quantity > medicine.max_quantity:
            raise InvalidMaxQuantityError()

        saved = self.medicines.save_medicine(
            medicine.copy_with(current_quantity=new_quantity, updated_at=utcnow())
        )
        logger.info("Stock %s: %d -> %d (%s)", saved.id, previous, new_quantity, reason)

        action = STOCK_ADDED_ACTION if adjustment > 0 else STOCK_REMOVED_ACTION
        details = (
            f"{action} de {abs(adjustment)} unité(s). "
            f"Stock modifié de {previous} à {new_quantity}. Raison: {reason}"
        )
        record_after_write(
            saved,
            lambda: self.recorder.stock_change(saved, action, details, previous, new_quantity),
        )
        return saved


class UpdateMedicineStockUseCase(UseCase):
    def __init__(self, medicines: MedicineRepository, recorder: HistoryRecorder):
        self.medicines = medicines
        self.recorder = recorder

    def execute(self, medicine_id: str, new_quantity: int, comment: str) -> Medicine:
        medicine = self.medicines.get_medicine(medicine_id)
        if medicine is None:
            raise MedicineNotFoundError()
        if new_quantity < 0:
            raise InvalidQuantityError()
        if new_quantity > medicine.max_quantity:
            raise InvalidMaxQuantityError()

        previous = medicine.current_quantity
        saved = self.medicines.save_medicine(
            medicine.copy_with(current_quantity=new_quantity, updated_at=utcnow())
        )
        details = f"Stock modifié de {previous} à {new_quantity}. {comment}"
        record_after_write(
            saved,
            lambda: self.recorder.stock_change(
                saved, STOCK_SET_ACTION, details, previous, new_quantity
            ),
        )
        return saved
