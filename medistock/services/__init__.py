from medistock.services.alerts import StockAlertService
from medistock.services.auth import AuthRepository, CognitoAuthRepository
from medistock.services.cache import LocalCacheService

__all__ = [
    "AuthRepository",
    "CognitoAuthRepository",
    "LocalCacheService",
    "StockAlertService",
]
