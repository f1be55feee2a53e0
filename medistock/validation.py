"""Business validation rules for aisles and medicines.

- Name, colour and icon checks for aisles
- Quantity, threshold and expiry checks for medicines
- Email and password checks used at sign-up

Rules are pure: ``validate_*`` raise the first violated ValidationError,
``check_*`` collect every violation into a ValidationResult.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Callable, Optional

from medistock.models.errors import (
    EmptyNameError,
    ExpiredDateError,
    InvalidColorFormatError,
    InvalidIconError,
    InvalidMaxQuantityError,
    InvalidThresholdsError,
    InvalidUnitError,
    MissingRequiredFieldError,
    NameTooLongError,
    NegativeQuantityError,
    ValidationError,
)
from medistock.models.inventory import Aisle, Medicine, as_utc, utcnow

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_AISLES_PER_USER = 50
MAX_MEDICINES_PER_USER = 1000

COLOR_HEX_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
# Letters, digits, whitespace, hyphens, apostrophes, dots, commas, parentheses
NAME_PATTERN = re.compile(r"^(?:[^\W_]|[\s\-'.,()])+$")
EMAIL_PATTERN = re.compile(r"^[A-Z0-9a-z._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,64}$")
SPECIAL_CHAR_PATTERN = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

VALID_ICONS = (
    "pills", "pills.fill", "pills.circle", "pills.circle.fill",
    "cross.case", "cross.case.fill", "bandage", "bandage.fill",
    "heart", "heart.fill", "stethoscope", "medical.thermometer",
    "syringe", "syringe.fill", "drop", "drop.fill",
    "capsule", "capsule.fill", "cross.vial", "cross.vial.fill",
    "waveform.path.ecg", "brain.head.profile", "lungs",
    "figure.walk", "bed.double", "wheelchair",
)

MIN_PASSWORD_LENGTH = 6


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [str(e) for e in self.errors]


class PasswordStrength(IntEnum):
    VERY_WEAK = 0
    WEAK = 1
    MEDIUM = 2
    STRONG = 3
    VERY_STRONG = 4


# --- Helpers ---


def sanitize_name(name: str) -> str:
    return (name or "").strip()


def is_valid_name(name: str) -> bool:
    trimmed = sanitize_name(name)
    if not trimmed or len(trimmed) > MAX_NAME_LENGTH:
        return False
    return NAME_PATTERN.match(trimmed) is not None


def is_valid_color_hex(value: str) -> bool:
    return bool(value) and COLOR_HEX_PATTERN.match(value) is not None


def is_valid_icon(icon: str) -> bool:
    return icon in VALID_ICONS


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def is_strong_password(password: str) -> bool:
    if len(password) < 8:
        return False
    return (
        re.search(r"[A-Z]", password) is not None
        and re.search(r"[a-z]", password) is not None
        and re.search(r"[0-9]", password) is not None
    )


def password_strength(password: str) -> PasswordStrength:
    if len(password) < 6:
        return PasswordStrength.VERY_WEAK
    if len(password) < 8:
        return PasswordStrength.WEAK
    if is_strong_password(password):
        if SPECIAL_CHAR_PATTERN.search(password):
            return PasswordStrength.VERY_STRONG
        return PasswordStrength.STRONG
    return PasswordStrength.MEDIUM


# --- Aisle rules ---


def _aisle_rules(aisle: Aisle) -> list[Callable[[], None]]:
    def name() -> None:
        if not is_valid_name(aisle.name):
            raise EmptyNameError()

    def color() -> None:
        if not is_valid_color_hex(aisle.color_hex):
            raise InvalidColorFormatError(aisle.color_hex)

    def icon() -> None:
        if not is_valid_icon(aisle.icon):
            raise InvalidIconError(aisle.icon)

    def description() -> None:
        if aisle.description and len(aisle.description) > MAX_DESCRIPTION_LENGTH:
            raise NameTooLongError(MAX_DESCRIPTION_LENGTH)

    return [name, color, icon, description]


def validate_aisle(aisle: Aisle) -> None:
    for rule in _aisle_rules(aisle):
        rule()


def check_aisle(aisle: Aisle) -> ValidationResult:
    return _collect(_aisle_rules(aisle))


# --- Medicine rules ---


def _medicine_rules(
    medicine: Medicine, today: Optional[datetime], check_expiry: bool
) -> list[Callable[[], None]]:
    def name() -> None:
        if not is_valid_name(medicine.name):
            raise EmptyNameError()

    def unit() -> None:
        if not (medicine.unit or "").strip():
            raise InvalidUnitError()

    def quantities() -> None:
        if medicine.current_quantity < 0:
            raise NegativeQuantityError("quantité actuelle")
        if medicine.max_quantity < 0:
            raise NegativeQuantityError("quantité maximale")
        if medicine.max_quantity < medicine.current_quantity:
            raise InvalidMaxQuantityError()

    def thresholds() -> None:
        if medicine.critical_threshold < 0:
            raise NegativeQuantityError("seuil critique")
        if medicine.warning_threshold < 0:
            raise NegativeQuantityError("seuil d'alerte")
        if medicine.critical_threshold >= medicine.warning_threshold:
            raise InvalidThresholdsError(
                medicine.critical_threshold, medicine.warning_threshold
            )

    def expiry() -> None:
        if not check_expiry or medicine.expiry_date is None:
            return
        reference = as_utc(today) or utcnow()
        # Day granularity: an expiry later today is still accepted
        if medicine.expiry_date.date() < reference.date():
            raise ExpiredDateError(medicine.expiry_date)

    def aisle() -> None:
        if not (medicine.aisle_id or "").strip():
            raise MissingRequiredFieldError("rayon")

    return [name, unit, quantities, thresholds, expiry, aisle]


def validate_medicine(
    medicine: Medicine, today: Optional[datetime] = None, check_expiry: bool = True
) -> None:
    for rule in _medicine_rules(medicine, today, check_expiry):
        rule()


def check_medicine(
    medicine: Medicine, today: Optional[datetime] = None, check_expiry: bool = True
) -> ValidationResult:
    return _collect(_medicine_rules(medicine, today, check_expiry))


def _collect(rules: list[Callable[[], None]]) -> ValidationResult:
    errors: list[ValidationError] = []
    for rule in rules:
        try:
            rule()
        except ValidationError as e:
            errors.append(e)
    return ValidationResult(is_valid=len(errors) == 0, errors=errors)
