"""Aisle use-cases."""

from __future__ import annotations

import logging

from medistock.models.errors import (
    AisleContainsMedicinesError,
    AisleNotFoundError,
    NameAlreadyExistsError,
    TooManyAislesError,
)
from medistock.models.inventory import Aisle, HistoryActionType
from medistock.repositories.base import (
    DEFAULT_PAGE_SIZE,
    AisleRepository,
    MedicineRepository,
)
from medistock.usecases.base import UseCase
from medistock.usecases.history import HistoryRecorder
from medistock.validation import MAX_AISLES_PER_USER, sanitize_name, validate_aisle

logger = logging.getLogger(__name__)


class AddAisleUseCase(UseCase):
    def __init__(self, aisles: AisleRepository, recorder: HistoryRecorder):
        self.aisles = aisles
        self.recorder = recorder

    def execute(self, aisle: Aisle) -> Aisle:
        candidate = aisle.copy_with(id=None, name=sanitize_name(aisle.name))
        validate_aisle(candidate)
        if self.aisles.find_by_name(candidate.name) is not None:
            raise NameAlreadyExistsError(candidate.name)
        if self.aisles.count_aisles() >= MAX_AISLES_PER_USER:
            raise TooManyAislesError(MAX_AISLES_PER_USER)

        saved = self.aisles.save_aisle(candidate)
        self.recorder.aisle_action(HistoryActionType.ADDITION, saved)
        return saved


class UpdateAisleUseCase(UseCase):
    def __init__(self, aisles: AisleRepository, recorder: HistoryRecorder):
        self.aisles = aisles
        self.recorder = recorder

    def execute(self, aisle: Aisle) -> Aisle:
        existing = self.aisles.get_aisle(aisle.id) if aisle.id else None
        if existing is None:
            raise AisleNotFoundError()

        candidate = aisle.copy_with(
            name=sanitize_name(aisle.name), created_at=existing.created_at
        )
        validate_aisle(candidate)
        if self.aisles.find_by_name(candidate.name, exclude_id=candidate.id) is not None:
            raise NameAlreadyExistsError(candidate.name)

        saved = self.aisles.save_aisle(candidate)
        self.recorder.aisle_action(HistoryActionType.MODIFICATION, saved)
        return saved


class DeleteAisleUseCase(UseCase):
    """Refuses to delete an aisle that still holds medicines."""

    def __init__(
        self,
        aisles: AisleRepository,
        medicines: MedicineRepository,
        recorder: HistoryRecorder,
    ):
        self.aisles = aisles
        self.medicines = medicines
        self.recorder = recorder

    def execute(self, aisle_id: str) -> None:
        aisle = self.aisles.get_aisle(aisle_id)
        if aisle is None:
            raise AisleNotFoundError()
        count = self.medicines.count_by_aisle(aisle_id)
        if count > 0:
            raise AisleContainsMedicinesError(count)

        self.aisles.delete_aisle(aisle_id)
        logger.info("Aisle %s (%s) deleted", aisle.name, aisle_id)
        self.recorder.aisle_action(HistoryActionType.DELETION, aisle)


class GetAisleUseCase(UseCase):
    def __init__(self, aisles: AisleRepository):
        self.aisles = aisles

    def execute(self, aisle_id: str) -> Aisle:
        aisle = self.aisles.get_aisle(aisle_id)
        if aisle is None:
            raise AisleNotFoundError()
        return aisle


class GetAislesUseCase(UseCase):
    def __init__(self, aisles: AisleRepository):
        self.aisles = aisles

    def execute(self) -> list[Aisle]:
        return self.aisles.list_aisles()


class SearchAisleUseCase(UseCase):
    def __init__(self, aisles: AisleRepository):
        self.aisles = aisles

    def execute(self, query: str) -> list[Aisle]:
        return self.aisles.search_aisles(query or "")


class GetMedicineCountByAisleUseCase(UseCase):
    def __init__(self, medicines: MedicineRepository):
        self.medicines = medicines

    def execute(self, aisle_id: str) -> int:
        return self.medicines.count_by_aisle(aisle_id)


class GetAislesPaginatedUseCase(UseCase):
    def __init__(self, aisles: AisleRepository, page_size: int = DEFAULT_PAGE_SIZE):
        self.aisles = aisles
        self.page_size = page_size

    @property
    def has_more(self) -> bool:
        return self.aisles.has_more_aisles

    def execute(self, refresh: bool = False) -> list[Aisle]:
        return self.aisles.list_aisles_page(limit=self.page_size, refresh=refresh)
