"""Server-side validation functions.

Two callables answer client pre-checks before a write:
- validate_aisle(data, context)
- validate_medicine(data, context)

Two create-triggers re-check freshly written documents and delete the ones
that break a rule, logging the violation to the validation_errors collection:
- on_aisle_created(document)
- on_medicine_created(document)

Payloads and documents use the camelCase attribute names of the client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from medistock.models.documents import (
    aisle_from_document,
    medicine_from_document,
    parse_timestamp,
)
from medistock.models.inventory import as_utc, utcnow
from medistock.repositories.base import AisleRepository, RepositoryFactory
from medistock.validation import (
    COLOR_HEX_PATTERN,
    MAX_AISLES_PER_USER,
    MAX_MEDICINES_PER_USER,
    MAX_NAME_LENGTH,
    VALID_ICONS,
)

logger = logging.getLogger(__name__)

UNAUTHENTICATED = "unauthenticated"
INVALID_ARGUMENT = "invalid-argument"


class HttpsError(Exception):
    """Error returned to a callable's client as ``{"error": {"status", "message"}}``."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def to_response(self) -> dict:
        return {"error": {"status": self.code.upper().replace("-", "_"), "message": self.message}}


class RuleViolation(Exception):
    """A document or payload broke a validation rule."""


@dataclass
class CallableContext:
    uid: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.uid)


@dataclass
class TriggerResult:
    document_id: str
    valid: bool
    error: Optional[str] = None


def _number(data: dict, key: str) -> float:
    value = data.get(key)
    if value is None:
        return 0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise RuleViolation(f"Valeur numérique invalide pour '{key}'")


def _string(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RuleViolation(f"Valeur texte invalide pour '{key}'")
    return value


def _payload(data: Any) -> dict:
    if not isinstance(data, dict):
        raise HttpsError(INVALID_ARGUMENT, "Données invalides")
    return data


def _normalized(name: str) -> str:
    return name.strip().lower()


class ValidationFunctions:
    """Callables and create-triggers over one repository backend."""

    def __init__(self, repositories: RepositoryFactory):
        self.repositories = repositories

    # --- Callables ---

    def validate_aisle(self, data: dict, context: CallableContext) -> dict:
        user_id = self._require_auth(context)
        data = _payload(data)
        try:
            name = _string(data, "name").strip()
            if not name:
                raise RuleViolation("Le nom est obligatoire")
            if self.repositories.aisles(user_id).find_by_name(name) is not None:
                raise RuleViolation("Un rayon avec ce nom existe déjà")
            if not COLOR_HEX_PATTERN.match(_string(data, "colorHex")):
                raise RuleViolation("Format de couleur invalide")
            if _string(data, "icon") not in VALID_ICONS:
                raise RuleViolation("Icône invalide")
        except RuleViolation as e:
            raise HttpsError(INVALID_ARGUMENT, str(e)) from e
        return {"valid": True}

    def validate_medicine(self, data: dict, context: CallableContext) -> dict:
        user_id = self._require_auth(context)
        data = _payload(data)
        try:
            if not _string(data, "name").strip():
                raise RuleViolation("Le nom est obligatoire")
            if _number(data, "currentQuantity") < 0:
                raise RuleViolation("La quantité ne peut pas être négative")
            if _number(data, "criticalThreshold") >= _number(data, "warningThreshold"):
                raise RuleViolation("Seuils incohérents")
            if not self.repositories.aisles(user_id).aisle_exists(_string(data, "aisleId")):
                raise RuleViolation("Rayon invalide")
        except RuleViolation as e:
            raise HttpsError(INVALID_ARGUMENT, str(e)) from e
        return {"valid": True}

    def _require_auth(self, context: Optional[CallableContext]) -> str:
        if context is None or not context.is_authenticated:
            raise HttpsError(UNAUTHENTICATED, "Utilisateur non authentifié")
        return context.uid

    # --- Create-triggers ---

    def on_aisle_created(self, document: dict) -> TriggerResult:
        document_id = document.get("id", "")
        user_id = document.get("userId", "")
        aisles = self.repositories.aisles(user_id)
        try:
            self._check_aisle_document(document, aisles)
        except RuleViolation as e:
            logger.error("Validation error for aisle %s: %s", document_id, e)
            aisles.delete_aisle(document_id)
            self.repositories.validation_errors().record("aisle", document_id, str(e))
            return TriggerResult(document_id, valid=False, error=str(e))

        if not document.get("createdAt") or not document.get("updatedAt"):
            now = utcnow()
            aisles.save_aisle(
                aisle_from_document(document).copy_with(created_at=now, updated_at=now)
            )
        return TriggerResult(document_id, valid=True)

    def on_medicine_created(self, document: dict, today: Optional[datetime] = None) -> TriggerResult:
        document_id = document.get("id", "")
        user_id = document.get("userId", "")
        medicines = self.repositories.medicines(user_id)
        try:
            self._check_medicine_document(document, user_id, as_utc(today) or utcnow())
            # The new document is already counted
            if medicines.count_medicines() > MAX_MEDICINES_PER_USER:
                raise RuleViolation(f"Limite de {MAX_MEDICINES_PER_USER} médicaments atteinte")
        except RuleViolation as e:
            logger.error("Validation error for medicine %s: %s", document_id, e)
            medicines.delete_medicine(document_id)
            self.repositories.validation_errors().record("medicine", document_id, str(e))
            return TriggerResult(document_id, valid=False, error=str(e))

        if not document.get("createdAt") or not document.get("updatedAt"):
            medicine = medicine_from_document(document)
            now = utcnow()
            medicines.save_medicine(medicine.copy_with(created_at=now, updated_at=now))
        return TriggerResult(document_id, valid=True)

    def _check_aisle_document(self, document: dict, aisles: AisleRepository) -> None:
        name = _string(document, "name")
        if not name.strip():
            raise RuleViolation("Le nom du rayon est obligatoire")
        if len(name) > MAX_NAME_LENGTH:
            raise RuleViolation(f"Le nom ne peut pas dépasser {MAX_NAME_LENGTH} caractères")
        if not COLOR_HEX_PATTERN.match(_string(document, "colorHex")):
            raise RuleViolation("Format de couleur invalide. Utilisez #RRGGBB")
        if _string(document, "icon") not in VALID_ICONS:
            raise RuleViolation("Icône SF Symbol invalide")
        existing = aisles.list_aisles()
        # The new document is already stored, so one match is itself
        same_name = [a for a in existing if _normalized(a.name) == _normalized(name)]
        if len(same_name) > 1:
            raise RuleViolation("Un rayon avec ce nom existe déjà")
        if len(existing) > MAX_AISLES_PER_USER:
            raise RuleViolation(f"Limite de {MAX_AISLES_PER_USER} rayons atteinte")

    def _check_medicine_document(self, document: dict, user_id: str, today: datetime) -> None:
        if not _string(document, "name").strip():
            raise RuleViolation("Le nom du médicament est obligatoire")
        current = _number(document, "currentQuantity")
        if current < 0:
            raise RuleViolation("La quantité actuelle ne peut pas être négative")
        if _number(document, "maxQuantity") < current:
            raise RuleViolation(
                "La quantité maximale doit être supérieure ou égale à la quantité actuelle"
            )
        if _number(document, "criticalThreshold") >= _number(document, "warningThreshold"):
            raise RuleViolation("Le seuil critique doit être inférieur au seuil d'alerte")
        if document.get("expiryDate"):
            try:
                expiry = parse_timestamp(document["expiryDate"])
            except (TypeError, ValueError):
                raise RuleViolation("Date d'expiration invalide")
            if expiry.date() < today.date():
                raise RuleViolation("La date d'expiration ne peut pas être dans le passé")
        if not self.repositories.aisles(user_id).aisle_exists(_string(document, "aisleId")):
            raise RuleViolation("Le rayon sélectionné n'existe pas")
