"""Repository interfaces. Every implementation is scoped to one user."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from medistock.models.inventory import Aisle, HistoryEntry, Medicine, User
from medistock.subscriptions import ChangeFeed, Subscription

DEFAULT_PAGE_SIZE = 20
DEFAULT_HISTORY_LIMIT = 100


def _matches(query: str, *fields: Optional[str]) -> bool:
    needle = query.strip().lower()
    return any(needle in (value or "").lower() for value in fields)


class ObservableRepository:
    """Publishes a fresh snapshot to observers after each write."""

    collection = ""

    def __init__(self, user_id: str, feed: Optional[ChangeFeed] = None):
        self.user_id = user_id
        self.feed = feed or ChangeFeed()

    @property
    def topic(self) -> str:
        return f"{self.collection}:{self.user_id}"

    def _snapshot(self) -> list:
        raise NotImplementedError

    def _observe(self, callback: Callable[[list], None]) -> Subscription:
        return self.feed.subscribe(self.topic, callback, initial=self._snapshot())

    def _publish(self) -> None:
        if self.feed.has_subscribers(self.topic):
            self.feed.publish(self.topic, self._snapshot())


class MedicineRepository(ObservableRepository, ABC):
    collection = "medicines"

    @abstractmethod
    def list_medicines(self) -> list[Medicine]:
        """All medicines of the user, ordered by name."""

    @abstractmethod
    def list_medicines_page(self, limit: int = DEFAULT_PAGE_SIZE, refresh: bool = False) -> list[Medicine]:
        """Next page of medicines; refresh restarts from the first page."""

    @property
    @abstractmethod
    def has_more_medicines(self) -> bool:
        ...

    @abstractmethod
    def get_medicine(self, medicine_id: str) -> Optional[Medicine]:
        ...

    @abstractmethod
    def save_medicine(self, medicine: Medicine) -> Medicine:
        """Creates (id is None) or replaces a medicine. Returns the stored value."""

    @abstractmethod
    def delete_medicine(self, medicine_id: str) -> None:
        ...

    @abstractmethod
    def count_medicines(self) -> int:
        ...

    @abstractmethod
    def count_by_aisle(self, aisle_id: str) -> int:
        ...

    def search_medicines(self, query: str) -> list[Medicine]:
        if not query.strip():
            return self.list_medicines()
        return [
            m for m in self.list_medicines()
            if _matches(query, m.name, m.reference, m.description)
        ]

    def observe_medicines(self, callback: Callable[[list[Medicine]], None]) -> Subscription:
        return self._observe(callback)

    def _snapshot(self) -> list:
        return self.list_medicines()


class AisleRepository(ObservableRepository, ABC):
    collection = "aisles"

    @abstractmethod
    def list_aisles(self) -> list[Aisle]:
        """All aisles of the user, ordered by name."""

    @abstractmethod
    def list_aisles_page(self, limit: int = DEFAULT_PAGE_SIZE, refresh: bool = False) -> list[Aisle]:
        ...

    @property
    @abstractmethod
    def has_more_aisles(self) -> bool:
        ...

    @abstractmethod
    def get_aisle(self, aisle_id: str) -> Optional[Aisle]:
        ...

    @abstractmethod
    def save_aisle(self, aisle: Aisle) -> Aisle:
        ...

    @abstractmethod
    def delete_aisle(self, aisle_id: str) -> None:
        ...

    @abstractmethod
    def count_aisles(self) -> int:
        ...

    def aisle_exists(self, aisle_id: str) -> bool:
        return bool(aisle_id) and self.get_aisle(aisle_id) is not None

    def find_by_name(self, name: str, exclude_id: Optional[str] = None) -> Optional[Aisle]:
        """Case-insensitive lookup on the trimmed name."""
        wanted = name.strip().lower()
        for aisle in self.list_aisles():
            if aisle.id != exclude_id and aisle.name.strip().lower() == wanted:
                return aisle
        return None

    def search_aisles(self, query: str) -> list[Aisle]:
        if not query.strip():
            return self.list_aisles()
        return [a for a in self.list_aisles() if _matches(query, a.name, a.description)]

    def observe_aisles(self, callback: Callable[[list[Aisle]], None]) -> Subscription:
        return self._observe(callback)

    def _snapshot(self) -> list:
        return self.list_aisles()


class HistoryRepository(ObservableRepository, ABC):
    collection = "history"

    @abstractmethod
    def add_entry(self, entry: HistoryEntry) -> HistoryEntry:
        ...

    @abstractmethod
    def list_history(
        self,
        medicine_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[HistoryEntry]:
        """Entries of the user, newest first, optionally filtered."""

    @abstractmethod
    def delete_older_than(self, cutoff: datetime) -> int:
        """Purges entries older than cutoff. Returns the number removed."""

    def list_for_medicine(self, medicine_id: str) -> list[HistoryEntry]:
        return self.list_history(medicine_id=medicine_id)

    def list_recent(self, limit: int) -> list[HistoryEntry]:
        return self.list_history(limit=limit)

    def observe_history(self, callback: Callable[[list[HistoryEntry]], None]) -> Subscription:
        return self._observe(callback)

    def _snapshot(self) -> list:
        return self.list_history()


class UserRepository(ABC):
    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def save_user(self, user: User) -> User:
        ...


class ValidationErrorLog(ABC):
    """Server-side record of documents rejected by the create-triggers."""

    @abstractmethod
    def record(self, item_type: str, document_id: str, message: str) -> None:
        ...


class RepositoryFactory(ABC):
    """Builds user-scoped repositories sharing one backend."""

    @abstractmethod
    def medicines(self, user_id: str) -> MedicineRepository:
        ...

    @abstractmethod
    def aisles(self, user_id: str) -> AisleRepository:
        ...

    @abstractmethod
    def history(self, user_id: str) -> HistoryRepository:
        ...

    @abstractmethod
    def users(self) -> UserRepository:
        ...

    @abstractmethod
    def validation_errors(self) -> ValidationErrorLog:
        ...
