"""Document <-> domain mapping for the medicines, aisles, history and users collections.

Documents use the camelCase attribute names of the mobile client. Timestamps
are stored as ISO-8601 strings; DynamoDB hands numbers back as Decimal.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from medistock.models.inventory import Aisle, HistoryEntry, Medicine, User, as_utc, utcnow


def decimal_to_native(obj):
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: decimal_to_native(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [decimal_to_native(i) for i in obj]
    return obj


def convert_floats(obj):
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: convert_floats(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [convert_floats(i) for i in obj]
    return obj


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    # Sort keys compare as strings, so every stored instant is written in UTC
    return as_utc(value).isoformat()


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return as_utc(parsed)


def _drop_none(data: dict) -> dict:
    # DynamoDB rejects empty attribute values; absent optionals are simply omitted
    return {k: v for k, v in data.items() if v is not None}


def medicine_to_document(medicine: Medicine, user_id: Optional[str] = None) -> dict:
    return _drop_none({
        "id": medicine.id,
        "name": medicine.name,
        "description": medicine.description,
        "dosage": medicine.dosage,
        "form": medicine.form,
        "reference": medicine.reference,
        "unit": medicine.unit,
        "currentQuantity": medicine.current_quantity,
        "maxQuantity": medicine.max_quantity,
        "warningThreshold": medicine.warning_threshold,
        "criticalThreshold": medicine.critical_threshold,
        "expiryDate": format_timestamp(medicine.expiry_date),
        "aisleId": medicine.aisle_id,
        "userId": user_id,
        "createdAt": format_timestamp(medicine.created_at),
        "updatedAt": format_timestamp(medicine.updated_at),
    })


def medicine_from_document(document: dict) -> Medicine:
    data = decimal_to_native(document)
    return Medicine(
        id=data.get("id"),
        name=data.get("name", ""),
        description=data.get("description"),
        dosage=data.get("dosage"),
        form=data.get("form"),
        reference=data.get("reference"),
        unit=data.get("unit", ""),
        current_quantity=int(data.get("currentQuantity", 0)),
        max_quantity=int(data.get("maxQuantity", 0)),
        warning_threshold=int(data.get("warningThreshold", 0)),
        critical_threshold=int(data.get("criticalThreshold", 0)),
        expiry_date=parse_timestamp(data.get("expiryDate")),
        aisle_id=data.get("aisleId", ""),
        created_at=parse_timestamp(data.get("createdAt")) or utcnow(),
        updated_at=parse_timestamp(data.get("updatedAt")) or utcnow(),
    )


def aisle_to_document(aisle: Aisle, user_id: Optional[str] = None) -> dict:
    return _drop_none({
        "id": aisle.id,
        "name": aisle.name,
        "description": aisle.description,
        "colorHex": aisle.color_hex,
        "icon": aisle.icon,
        "userId": user_id,
        "createdAt": format_timestamp(aisle.created_at),
        "updatedAt": format_timestamp(aisle.updated_at),
    })


def aisle_from_document(document: dict) -> Aisle:
    data = decimal_to_native(document)
    return Aisle(
        id=data.get("id"),
        name=data.get("name", ""),
        description=data.get("description"),
        color_hex=data.get("colorHex", "#007AFF"),
        icon=data.get("icon", "pills"),
        created_at=parse_timestamp(data.get("createdAt")) or utcnow(),
        updated_at=parse_timestamp(data.get("updatedAt")) or utcnow(),
    )


def history_to_document(entry: HistoryEntry) -> dict:
    return _drop_none({
        "id": entry.id,
        # Aisle entries carry no medicine; an empty string cannot be an index key
        "medicineId": entry.medicine_id or None,
        "userId": entry.user_id,
        "action": entry.action,
        "details": entry.details,
        "timestamp": format_timestamp(entry.timestamp),
        "metadata": dict(entry.metadata) if entry.metadata else None,
    })


def history_from_document(document: dict) -> HistoryEntry:
    data = decimal_to_native(document)
    metadata = data.get("metadata")
    return HistoryEntry(
        id=data.get("id"),
        medicine_id=data.get("medicineId", ""),
        user_id=data.get("userId", ""),
        action=data.get("action", ""),
        details=data.get("details", ""),
        timestamp=parse_timestamp(data.get("timestamp")) or utcnow(),
        metadata={k: str(v) for k, v in metadata.items()} if metadata else None,
    )


def user_to_document(user: User) -> dict:
    return _drop_none({
        "id": user.id,
        "email": user.email,
        "displayName": user.display_name,
    })


def user_from_document(document: dict) -> User:
    data = decimal_to_native(document)
    return User(
        id=data["id"],
        email=data.get("email"),
        display_name=data.get("displayName"),
    )
