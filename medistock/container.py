"""Explicit wiring of repositories, services and use-cases for one signed-in user."""

from __future__ import annotations

import logging
from typing import Any, Optional

from medistock.config import BACKEND_MEMORY, Settings
from medistock.repositories.base import RepositoryFactory
from medistock.repositories.dynamodb import DynamoDBRepositoryFactory
from medistock.repositories.memory import InMemoryRepositoryFactory
from medistock.services.alerts import StockAlertService
from medistock.services.auth import AuthRepository, CognitoAuthRepository
from medistock.services.cache import LocalCacheService
from medistock.usecases import (
    AddAisleUseCase,
    AddMedicineUseCase,
    AdjustStockUseCase,
    DeleteAisleUseCase,
    DeleteMedicineUseCase,
    GetAisleUseCase,
    GetAislesPaginatedUseCase,
    GetAislesUseCase,
    GetHistoryForMedicineUseCase,
    GetHistoryUseCase,
    GetMedicineCountByAisleUseCase,
    GetMedicineUseCase,
    GetMedicinesPaginatedUseCase,
    GetMedicinesUseCase,
    GetRecentHistoryUseCase,
    GetUserUseCase,
    HistoryRecorder,
    SearchAisleUseCase,
    SearchMedicineUseCase,
    SignInUseCase,
    SignOutUseCase,
    SignUpUseCase,
    UpdateAisleUseCase,
    UpdateMedicineStockUseCase,
    UpdateMedicineUseCase,
)

logger = logging.getLogger(__name__)


def build_repository_factory(
    settings: Settings, dynamodb_resource: Optional[Any] = None
) -> RepositoryFactory:
    if settings.backend == BACKEND_MEMORY:
        return InMemoryRepositoryFactory()
    return DynamoDBRepositoryFactory(settings, dynamodb_resource=dynamodb_resource)


class Container:
    def __init__(
        self,
        settings: Settings,
        user_id: str,
        repositories: RepositoryFactory,
        auth: Optional[AuthRepository] = None,
    ):
        self.settings = settings
        self.user_id = user_id
        self.repositories = repositories
        self.auth = auth

        self.medicines = repositories.medicines(user_id)
        self.aisles = repositories.aisles(user_id)
        self.history = repositories.history(user_id)
        self.recorder = HistoryRecorder(self.history)
        self.cache = LocalCacheService(settings.cache_dir, settings.cache_ttl_hours)
        self.alerts = StockAlertService(self.medicines)

        # Medicines
        self.add_medicine = AddMedicineUseCase(self.medicines, self.aisles, self.recorder)
        self.update_medicine = UpdateMedicineUseCase(self.medicines, self.aisles, self.recorder)
        self.delete_medicine = DeleteMedicineUseCase(self.medicines, self.recorder)
        self.get_medicine = GetMedicineUseCase(self.medicines)
        self.get_medicines = GetMedicinesUseCase(self.medicines)
        self.search_medicine = SearchMedicineUseCase(self.medicines)
        self.get_medicines_paginated = GetMedicinesPaginatedUseCase(self.medicines)
        self.adjust_stock = AdjustStockUseCase(self.medicines, self.recorder)
        self.update_medicine_stock = UpdateMedicineStockUseCase(self.medicines, self.recorder)

        # Aisles
        self.add_aisle = AddAisleUseCase(self.aisles, self.recorder)
        self.update_aisle = UpdateAisleUseCase(self.aisles, self.recorder)
        self.delete_aisle = DeleteAisleUseCase(self.aisles, self.medicines, self.recorder)
        self.get_aisle = GetAisleUseCase(self.aisles)
        self.get_aisles = GetAislesUseCase(self.aisles)
        self.search_aisle = SearchAisleUseCase(self.aisles)
        self.get_medicine_count_by_aisle = GetMedicineCountByAisleUseCase(self.medicines)
        self.get_aisles_paginated = GetAislesPaginatedUseCase(self.aisles)

        # History
        self.get_history = GetHistoryUseCase(self.history)
        self.get_history_for_medicine = GetHistoryForMedicineUseCase(self.history)
        self.get_recent_history = GetRecentHistoryUseCase(self.history)

        # Auth
        if auth is not None:
            self.sign_in = SignInUseCase(auth)
            self.sign_up = SignUpUseCase(auth)
            self.sign_out = SignOutUseCase(auth)
            self.get_user = GetUserUseCase(auth)


def build_container(
    settings: Optional[Settings] = None,
    user_id: str = "",
    dynamodb_resource: Optional[Any] = None,
    repositories: Optional[RepositoryFactory] = None,
    auth: Optional[AuthRepository] = None,
    cognito_client: Optional[Any] = None,
) -> Container:
    """Builds every dependency for ``user_id``. Nothing is cached at module level."""
    settings = settings or Settings.from_env()
    repositories = repositories or build_repository_factory(settings, dynamodb_resource)
    if auth is None and (settings.cognito_client_id or cognito_client is not None):
        auth = CognitoAuthRepository(
            settings.cognito_client_id,
            cognito_client=cognito_client,
            region_name=settings.region,
            users=repositories.users(),
        )
    logger.info("Container ready for %s (backend: %s)", user_id or "-", settings.backend)
    return Container(settings, user_id, repositories, auth)
