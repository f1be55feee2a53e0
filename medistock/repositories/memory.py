"""In-process repositories. Used for offline runs and by the test-suite.

Entities are stored as documents (the same mapping as DynamoDB) so a
save/fetch round-trip behaves like the real backend.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from typing import Optional

from medistock.models.documents import (
    aisle_from_document,
    aisle_to_document,
    format_timestamp,
    history_from_document,
    history_to_document,
    medicine_from_document,
    medicine_to_document,
    parse_timestamp,
    user_from_document,
    user_to_document,
)
from medistock.models.inventory import Aisle, HistoryEntry, Medicine, User, as_utc, utcnow
from medistock.repositories.base import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_PAGE_SIZE,
    AisleRepository,
    HistoryRepository,
    MedicineRepository,
    RepositoryFactory,
    UserRepository,
    ValidationErrorLog,
)
from medistock.subscriptions import ChangeFeed

logger = logging.getLogger(__name__)


def new_document_id() -> str:
    return uuid.uuid4().hex


class InMemoryStore:
    """Collections of documents keyed by id: {collection: {id: document}}."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()

    def put(self, collection: str, document: dict) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[document["id"]] = dict(document)

    def get(self, collection: str, document_id: str) -> Optional[dict]:
        with self._lock:
            document = self._collections.get(collection, {}).get(document_id)
            return dict(document) if document else None

    def delete(self, collection: str, document_id: str) -> bool:
        with self._lock:
            return self._collections.get(collection, {}).pop(document_id, None) is not None

    def where(self, collection: str, **equals) -> list[dict]:
        with self._lock:
            documents = list(self._collections.get(collection, {}).values())
        return [
            dict(d) for d in documents
            if all(d.get(key) == value for key, value in equals.items())
        ]


class _Pager:
    def __init__(self) -> None:
        self.offset = 0
        self.has_more = True

    def next_page(self, items: list, limit: int, refresh: bool) -> list:
        if refresh:
            self.offset = 0
            self.has_more = True
        if not self.has_more:
            return []
        page = items[self.offset:self.offset + limit]
        self.offset += len(page)
        self.has_more = self.offset < len(items)
        return page


class InMemoryMedicineRepository(MedicineRepository):
    def __init__(self, store: InMemoryStore, user_id: str, feed: Optional[ChangeFeed] = None):
        super().__init__(user_id, feed)
        self._store = store
        self._pager = _Pager()

    def list_medicines(self) -> list[Medicine]:
        documents = self._store.where(self.collection, userId=self.user_id)
        return sorted((medicine_from_document(d) for d in documents), key=lambda m: m.name)

    def list_medicines_page(self, limit: int = DEFAULT_PAGE_SIZE, refresh: bool = False) -> list[Medicine]:
        return self._pager.next_page(self.list_medicines(), limit, refresh)

    @property
    def has_more_medicines(self) -> bool:
        return self._pager.has_more

    def get_medicine(self, medicine_id: str) -> Optional[Medicine]:
        if not medicine_id:
            return None
        document = self._store.get(self.collection, medicine_id)
        if document is None or document.get("userId") != self.user_id:
            return None
        return medicine_from_document(document)

    def save_medicine(self, medicine: Medicine) -> Medicine:
        now = utcnow()
        if medicine.id:
            stored = medicine.copy_with(updated_at=now)
        else:
            stored = medicine.copy_with(id=new_document_id(), created_at=now, updated_at=now)
        self._store.put(self.collection, medicine_to_document(stored, self.user_id))
        self._publish()
        return stored

    def delete_medicine(self, medicine_id: str) -> None:
        self._store.delete(self.collection, medicine_id)
        self._publish()

    def count_medicines(self) -> int:
        return len(self._store.where(self.collection, userId=self.user_id))

    def count_by_aisle(self, aisle_id: str) -> int:
        if not aisle_id:
            return 0
        return len(self._store.where(self.collection, userId=self.user_id, aisleId=aisle_id))


class InMemoryAisleRepository(AisleRepository):
    def __init__(self, store: InMemoryStore, user_id: str, feed: Optional[ChangeFeed] = None):
        super().__init__(user_id, feed)
        self._store = store
        self._pager = _Pager()

    def list_aisles(self) -> list[Aisle]:
        documents = self._store.where(self.collection, userId=self.user_id)
        return sorted((aisle_from_document(d) for d in documents), key=lambda a: a.name)

    def list_aisles_page(self, limit: int = DEFAULT_PAGE_SIZE, refresh: bool = False) -> list[Aisle]:
        return self._pager.next_page(self.list_aisles(), limit, refresh)

    @property
    def has_more_aisles(self) -> bool:
        return self._pager.has_more

    def get_aisle(self, aisle_id: str) -> Optional[Aisle]:
        if not aisle_id:
            return None
        document = self._store.get(self.collection, aisle_id)
        if document is None or document.get("userId") != self.user_id:
            return None
        return aisle_from_document(document)

    def save_aisle(self, aisle: Aisle) -> Aisle:
        now = utcnow()
        if aisle.id:
            stored = aisle.copy_with(updated_at=now)
        else:
            stored = aisle.copy_with(id=new_document_id(), created_at=now, updated_at=now)
        self._store.put(self.collection, aisle_to_document(stored, self.user_id))
        self._publish()
        return stored

    def delete_aisle(self, aisle_id: str) -> None:
        self._store.delete(self.collection, aisle_id)
        self._publish()

    def count_aisles(self) -> int:
        return len(self._store.where(self.collection, userId=self.user_id))


class InMemoryHistoryRepository(HistoryRepository):
    def __init__(self, store: InMemoryStore, user_id: str, feed: Optional[ChangeFeed] = None):
        super().__init__(user_id, feed)
        self._store = store

    def add_entry(self, entry: HistoryEntry) -> HistoryEntry:
        if not entry.id:
            entry = HistoryEntry(
                id=new_document_id(),
                medicine_id=entry.medicine_id,
                user_id=entry.user_id,
                action=entry.action,
                details=entry.details,
                timestamp=entry.timestamp,
                metadata=entry.metadata,
            )
        self._store.put(self.collection, history_to_document(entry))
        self._publish()
        return entry

    def list_history(
        self,
        medicine_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[HistoryEntry]:
        filters = {"userId": self.user_id}
        if medicine_id:
            filters["medicineId"] = medicine_id
        entries = [history_from_document(d) for d in self._store.where(self.collection, **filters)]
        start, end = as_utc(start), as_utc(end)
        if start is not None:
            entries = [e for e in entries if e.timestamp >= start]
        if end is not None:
            entries = [e for e in entries if e.timestamp <= end]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]

    def delete_older_than(self, cutoff: datetime) -> int:
        removed = 0
        for document in self._store.where(self.collection, userId=self.user_id):
            if parse_timestamp(document.get("timestamp")) < as_utc(cutoff):
                removed += int(self._store.delete(self.collection, document["id"]))
        if removed:
            self._publish()
        return removed


class InMemoryUserRepository(UserRepository):
    collection = "users"

    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_user(self, user_id: str) -> Optional[User]:
        document = self._store.get(self.collection, user_id)
        return user_from_document(document) if document else None

    def save_user(self, user: User) -> User:
        self._store.put(self.collection, user_to_document(user))
        return user


class InMemoryValidationErrorLog(ValidationErrorLog):
    collection = "validation_errors"

    def __init__(self, store: InMemoryStore):
        self._store = store

    def record(self, item_type: str, document_id: str, message: str) -> None:
        self._store.put(self.collection, {
            "id": new_document_id(),
            "type": item_type,
            "documentId": document_id,
            "errorMessage": message,
            "timestamp": format_timestamp(utcnow()),
        })
        logger.warning("Rejected %s %s: %s", item_type, document_id, message)

    def entries(self) -> list[dict]:
        return self._store.where(self.collection)


class InMemoryRepositoryFactory(RepositoryFactory):
    def __init__(self, store: Optional[InMemoryStore] = None, feed: Optional[ChangeFeed] = None):
        self.store = store or InMemoryStore()
        self.feed = feed or ChangeFeed()

    def medicines(self, user_id: str) -> InMemoryMedicineRepository:
        return InMemoryMedicineRepository(self.store, user_id, self.feed)

    def aisles(self, user_id: str) -> InMemoryAisleRepository:
        return InMemoryAisleRepository(self.store, user_id, self.feed)

    def history(self, user_id: str) -> InMemoryHistoryRepository:
        return InMemoryHistoryRepository(self.store, user_id, self.feed)

    def users(self) -> InMemoryUserRepository:
        return InMemoryUserRepository(self.store)

    def validation_errors(self) -> InMemoryValidationErrorLog:
        return InMemoryValidationErrorLog(self.store)
