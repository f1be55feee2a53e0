from medistock.usecases.aisle import (
    AddAisleUseCase,
    DeleteAisleUseCase,
    GetAislesPaginatedUseCase,
    GetAisleUseCase,
    GetAislesUseCase,
    GetMedicineCountByAisleUseCase,
    SearchAisleUseCase,
    UpdateAisleUseCase,
)
from medistock.usecases.auth import (
    GetUserUseCase,
    SignInUseCase,
    SignOutUseCase,
    SignUpUseCase,
)
from medistock.usecases.history import (
    GetHistoryForMedicineUseCase,
    GetHistoryUseCase,
    GetRecentHistoryUseCase,
    HistoryRecorder,
)
from medistock.usecases.medicine import (
    AddMedicineUseCase,
    DeleteMedicineUseCase,
    GetMedicinesPaginatedUseCase,
    GetMedicinesUseCase,
    GetMedicineUseCase,
    SearchMedicineUseCase,
    UpdateMedicineUseCase,
)
from medistock.usecases.stock import AdjustStockUseCase, UpdateMedicineStockUseCase

__all__ = [
    "AddAisleUseCase",
    "AddMedicineUseCase",
    "AdjustStockUseCase",
    "DeleteAisleUseCase",
    "DeleteMedicineUseCase",
    "GetAisleUseCase",
    "GetAislesPaginatedUseCase",
    "GetAislesUseCase",
    "GetHistoryForMedicineUseCase",
    "GetHistoryUseCase",
    "GetMedicineCountByAisleUseCase",
    "GetMedicineUseCase",
    "GetMedicinesPaginatedUseCase",
    "GetMedicinesUseCase",
    "GetRecentHistoryUseCase",
    "GetUserUseCase",
    "HistoryRecorder",
    "SearchAisleUseCase",
    "SearchMedicineUseCase",
    "SignInUseCase",
    "SignOutUseCase",
    "SignUpUseCase",
    "UpdateAisleUseCase",
    "UpdateMedicineStockUseCase",
    "UpdateMedicineUseCase",
]
