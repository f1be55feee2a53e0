"""MediStock error taxonomy.

ValidationError covers user-correctable business-rule violations. The other
families are operational failures (not found, save/delete failures, auth).
Messages are the localized strings shown to the user.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

GENERIC_ERROR_MESSAGE = "Une erreur inconnue est survenue."


class MediStockError(Exception):
    """Base class for every error the application surfaces."""

    default_message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


# --- Validation ---


class ValidationError(MediStockError):
    """Business-rule violation."""


class EmptyNameError(ValidationError):
    default_message = "Le nom ne peut pas être vide"


class NameTooLongError(ValidationError):
    def __init__(self, max_length: int):
        self.max_length = max_length
        super().__init__(f"Le nom ne peut pas dépasser {max_length} caractères")


class NameAlreadyExistsError(ValidationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Un élément avec le nom '{name}' existe déjà")


class InvalidIdError(ValidationError):
    default_message = "L'identifiant est invalide"


class InvalidColorFormatError(ValidationError):
    def __init__(self, provided: str):
        self.provided = provided
        super().__init__(
            f"Format de couleur invalide '{provided}'. Utilisez le format #RRGGBB"
        )


class InvalidIconError(ValidationError):
    def __init__(self, provided: str):
        self.provided = provided
        super().__init__(f"Icône SF Symbol '{provided}' invalide ou non disponible")


class TooManyAislesError(ValidationError):
    def __init__(self, max_count: int):
        self.max_count = max_count
        super().__init__(f"Vous avez atteint la limite de {max_count} rayons")


class TooManyMedicinesError(ValidationError):
    def __init__(self, max_count: int):
        self.max_count = max_count
        super().__init__(f"Vous avez atteint la limite de {max_count} médicaments")


class NegativeQuantityError(ValidationError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"La valeur de '{field}' ne peut pas être négative")


class InvalidMaxQuantityError(ValidationError):
    default_message = (
        "La quantité maximale doit être supérieure ou égale à la quantité actuelle"
    )


class InvalidThresholdsError(ValidationError):
    def __init__(self, critical: int, warning: int):
        self.critical = critical
        self.warning = warning
        super().__init__(
            f"Le seuil critique ({critical}) doit être inférieur au seuil d'alerte ({warning})"
        )


class ExpiredDateError(ValidationError):
    def __init__(self, date: datetime):
        self.date = date
        super().__init__(
            f"La date d'expiration ({date.strftime('%d/%m/%Y')}) est déjà passée"
        )


class InvalidAisleReferenceError(ValidationError):
    def __init__(self, aisle_id: str):
        self.aisle_id = aisle_id
        super().__init__(f"Le rayon sélectionné (ID: {aisle_id}) n'existe pas")


class InvalidUnitError(ValidationError):
    default_message = "L'unité de mesure est invalide"


class MissingRequiredFieldError(ValidationError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Le champ '{field}' est obligatoire")


class AisleContainsMedicinesError(ValidationError):
    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"Impossible de supprimer un rayon contenant des médicaments ({count})"
        )


# --- Medicine / aisle operations ---


class MedicineError(MediStockError):
    """Operational failure while handling a medicine."""


class MedicineNotFoundError(MedicineError):
    default_message = "Le médicament demandé n'a pas été trouvé."


class InvalidMedicineDataError(MedicineError):
    default_message = "Les données du médicament sont invalides."


class MedicineSaveError(MedicineError):
    default_message = "Échec de l'enregistrement du médicament."


class MedicineDeleteError(MedicineError):
    default_message = "Échec de la suppression du médicament."


class InvalidQuantityError(MedicineError):
    default_message = "La quantité demandée n'est pas valide."


class UnknownMedicineError(MedicineError):
    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(str(cause) if cause else None)


class HistoryWriteError(MedicineError):
    """The stock write succeeded but its history entry could not be stored."""

    def __init__(self, medicine: Any, cause: Optional[BaseException] = None):
        self.medicine = medicine
        self.cause = cause
        super().__init__(
            "Le stock a été mis à jour mais l'historique n'a pas pu être enregistré."
        )


class AisleNotFoundError(MediStockError):
    default_message = "Le rayon demandé n'a pas été trouvé."


class RepositoryError(MediStockError):
    """Storage failure outside the medicine save/delete paths."""

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


# --- Stock ---


class StockError(MediStockError):
    """Stock movement rejected."""


class InsufficientStockError(StockError):
    default_message = "Stock insuffisant pour effectuer cette opération."


class InvalidAmountError(StockError):
    default_message = "La quantité spécifiée n'est pas valide."


# --- Auth ---


class AuthError(MediStockError):
    """Authentication failure."""


class InvalidEmailError(AuthError):
    default_message = "L'adresse e-mail n'est pas valide."


class InvalidPasswordError(AuthError):
    default_message = "Le mot de passe n'est pas valide."


class WeakPasswordError(AuthError):
    default_message = "Le mot de passe est trop faible. Utilisez au moins 6 caractères."


class EmailAlreadyInUseError(AuthError):
    default_message = "Cette adresse e-mail est déjà utilisée par un autre compte."


class UserNotFoundError(AuthError):
    default_message = "Aucun utilisateur ne correspond à cette adresse e-mail."


class WrongPasswordError(AuthError):
    default_message = "Le mot de passe est incorrect."


class NetworkError(AuthError):
    default_message = "Une erreur réseau est survenue. Vérifiez votre connexion internet."


class UnknownAuthError(AuthError):
    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(str(cause) if cause else None)


class NotAuthenticatedError(AuthError):
    default_message = "Utilisateur non authentifié"


# --- Export ---


class ExportError(MediStockError):
    default_message = "Erreur inconnue lors de l'export."
