from medistock.repositories.base import (
    AisleRepository,
    HistoryRepository,
    MedicineRepository,
    RepositoryFactory,
    UserRepository,
    ValidationErrorLog,
)
from medistock.repositories.dynamodb import DynamoDBRepositoryFactory
from medistock.repositories.memory import InMemoryRepositoryFactory, InMemoryStore

__all__ = [
    "AisleRepository",
    "DynamoDBRepositoryFactory",
    "HistoryRepository",
    "InMemoryRepositoryFactory",
    "InMemoryStore",
    "MedicineRepository",
    "RepositoryFactory",
    "UserRepository",
    "ValidationErrorLog",
]
