"""Per-screen state holders.

A view-model calls use-cases, keeps the resulting state and notifies its
observers after every change. Business errors surface through
``error_message`` as their localized text; anything else becomes the generic
message and is logged with its traceback.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from medistock.container import Container
from medistock.models.errors import (
    GENERIC_ERROR_MESSAGE,
    MediStockError,
    NotAuthenticatedError,
    RepositoryError,
    UnknownMedicineError,
)
from medistock.models.inventory import Aisle, HistoryEntry, Medicine, StockStatus, User
from medistock.subscriptions import Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")

Observer = Callable[["ViewModelBase"], None]


class ViewModelBase:
    def __init__(self) -> None:
        self.is_loading = False
        self.error_message: Optional[str] = None
        self._observers: list[Observer] = []
        self._subscriptions: list[Subscription] = []

    def add_observer(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def clear_error(self) -> None:
        self.error_message = None
        self._notify()

    def close(self) -> None:
        """Cancels every live subscription held by this view-model."""
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

    def _notify(self) -> None:
        for observer in list(self._observers):
            observer(self)

    def _run(self, action: Callable[[], T]) -> Optional[T]:
        self.is_loading = True
        self.error_message = None
        self._notify()
        try:
            return action()
        except MediStockError as e:
            logger.info("%s: %s", type(self).__name__, e)
            self.error_message = e.message
            return None
        except Exception:
            logger.exception("%s: unexpected failure", type(self).__name__)
            self.error_message = GENERIC_ERROR_MESSAGE
            return None
        finally:
            self.is_loading = False
            self._notify()


class MedicineListViewModel(ViewModelBase):
    def __init__(self, container: Container):
        super().__init__()
        self.container = container
        self.medicines: list[Medicine] = []
        self.aisles: list[Aisle] = []
        self.search_text = ""
        self.selected_aisle_id: Optional[str] = None
        self.has_more = True
        self.from_cache = False

    @property
    def filtered_medicines(self) -> list[Medicine]:
        medicines = self.medicines
        if self.selected_aisle_id:
            medicines = [m for m in medicines if m.aisle_id == self.selected_aisle_id]
        if self.search_text.strip():
            needle = self.search_text.strip().lower()
            medicines = [
                m for m in medicines
                if needle in m.name.lower() or needle in (m.reference or "").lower()
            ]
        return medicines

    @property
    def critical_medicines(self) -> list[Medicine]:
        return [m for m in self.medicines if m.stock_status == StockStatus.CRITICAL]

    @property
    def expiring_medicines(self) -> list[Medicine]:
        return [m for m in self.medicines if m.is_expiring_soon and not m.is_expired]

    @property
    def _cache_key(self) -> str:
        return f"medicines_{self.container.user_id}"

    def load(self) -> None:
        """Loads every medicine, falling back to the last cached list when storage is unreachable."""
        def action() -> None:
            self.has_more = False
            try:
                self.medicines = self.container.get_medicines.execute()
            except (UnknownMedicineError, RepositoryError):
                cached = self.container.cache.fetch_medicines(self._cache_key)
                if cached is None:
                    raise
                logger.warning("Storage unreachable, showing %d cached medicines", len(cached))
                self.medicines = cached
                self.from_cache = True
                return
            self.from_cache = False
            try:
                self.container.cache.save_medicines(self._cache_key, self.medicines)
            except OSError as e:
                logger.warning("Medicine cache not written: %s", e)
            self.aisles = self.container.get_aisles.execute()

        self._run(action)

    def load_first_page(self) -> None:
        def action() -> None:
            self.medicines = self.container.get_medicines_paginated.execute(refresh=True)
            self.has_more = self.container.get_medicines_paginated.has_more

        self._run(action)

    def load_more(self) -> None:
        if not self.has_more or self.is_loading:
            return

        def action() -> None:
            self.medicines = self.medicines + self.container.get_medicines_paginated.execute()
            self.has_more = self.container.get_medicines_paginated.has_more

        self._run(action)

    def search(self, query: str) -> None:
        self.search_text = query
        self._notify()

    def filter_by_aisle(self, aisle_id: Optional[str]) -> None:
        self.selected_aisle_id = aisle_id
        self._notify()

    def delete(self, medicine_id: str) -> None:
        def action() -> None:
            self.container.delete_medicine.execute(medicine_id)
            self.medicines = [m for m in self.medicines if m.id != medicine_id]

        self._run(action)

    def start_observing(self) -> None:
        def on_change(medicines: list[Medicine]) -> None:
            self.medicines = medicines
            self._notify()

        self._subscriptions.append(self.container.medicines.observe_medicines(on_change))


class MedicineDetailViewModel(ViewModelBase):
    def __init__(self, container: Container, medicine_id: Optional[str] = None):
        super().__init__()
        self.container = container
        self.medicine_id = medicine_id
        self.medicine: Optional[Medicine] = None
        self.history: list[HistoryEntry] = []

    def load(self) -> None:
        if not self.medicine_id:
            return

        def action() -> None:
            self.medicine = self.container.get_medicine.execute(self.medicine_id)
            self.history = self.container.get_history_for_medicine.execute(self.medicine_id)

        self._run(action)

    def save(self, medicine: Medicine) -> Optional[Medicine]:
        """Adds a new medicine or updates the current one."""

        def action() -> Medicine:
            if medicine.id:
                saved = self.container.update_medicine.execute(medicine)
            else:
                saved = self.container.add_medicine.execute(medicine)
            self.medicine = saved
            self.medicine_id = saved.id
            return saved

        return self._run(action)

    def adjust_stock(self, adjustment: int, reason: str) -> Optional[Medicine]:
        return self._stock_action(
            lambda: self.container.adjust_stock.execute(self.medicine_id, adjustment, reason)
        )

    def update_stock(self, new_quantity: int, comment: str) -> Optional[Medicine]:
        return self._stock_action(
            lambda: self.container.update_medicine_stock.execute(
                self.medicine_id, new_quantity, comment
            )
        )

    def delete(self) -> bool:
        def action() -> bool:
            self.container.delete_medicine.execute(self.medicine_id)
            self.medicine = None
            return True

        return bool(self._run(action))

    def _stock_action(self, call: Callable[[], Medicine]) -> Optional[Medicine]:
        def action() -> Medicine:
            self.medicine = call()
            self.history = self.container.get_history_for_medicine.execute(self.medicine_id)
            return self.medicine

        return self._run(action)


class AisleListViewModel(ViewModelBase):
    def __init__(self, container: Container):
        super().__init__()
        self.container = container
        self.aisles: list[Aisle] = []
        self.medicine_counts: dict[str, int] = {}
        self.search_text = ""

    @property
    def filtered_aisles(self) -> list[Aisle]:
        needle = self.search_text.strip().lower()
        if not needle:
            return self.aisles
        return [
            a for a in self.aisles
            if needle in a.name.lower() or needle in (a.description or "").lower()
        ]

    def load(self) -> None:
        def action() -> None:
            self.aisles = self.container.get_aisles.execute()
            self.medicine_counts = {
                a.id: self.container.get_medicine_count_by_aisle.execute(a.id)
                for a in self.aisles
                if a.id
            }

        self._run(action)

    def search(self, query: str) -> None:
        self.search_text = query
        self._notify()

    def save(self, aisle: Aisle) -> Optional[Aisle]:
        def action() -> Aisle:
            if aisle.id:
                saved = self.container.update_aisle.execute(aisle)
                self.aisles = [saved if a.id == saved.id else a for a in self.aisles]
            else:
                saved = self.container.add_aisle.execute(aisle)
                self.aisles = sorted(self.aisles + [saved], key=lambda a: a.name)
                self.medicine_counts[saved.id] = 0
            return saved

        return self._run(action)

    def delete(self, aisle_id: str) -> None:
        def action() -> None:
            self.container.delete_aisle.execute(aisle_id)
            self.aisles = [a for a in self.aisles if a.id != aisle_id]
            self.medicine_counts.pop(aisle_id, None)

        self._run(action)

    def start_observing(self) -> None:
        def on_change(aisles: list[Aisle]) -> None:
            self.aisles = aisles
            self._notify()

        self._subscriptions.append(self.container.aisles.observe_aisles(on_change))


class HistoryViewModel(ViewModelBase):
    def __init__(self, container: Container):
        super().__init__()
        self.container = container
        self.entries: list[HistoryEntry] = []
        self.action_filter: Optional[str] = None

    @property
    def filtered_entries(self) -> list[HistoryEntry]:
        if not self.action_filter:
            return self.entries
        return [e for e in self.entries if e.action == self.action_filter]

    def load(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> None:
        def action() -> None:
            self.entries = self.container.get_history.execute(start=start, end=end)

        self._run(action)

    def load_for_medicine(self, medicine_id: str) -> None:
        def action() -> None:
            self.entries = self.container.get_history_for_medicine.execute(medicine_id)

        self._run(action)

    def load_recent(self, limit: int = 10) -> None:
        def action() -> None:
            self.entries = self.container.get_recent_history.execute(limit)

        self._run(action)


class AuthViewModel(ViewModelBase):
    def __init__(self, container: Container):
        super().__init__()
        if container.auth is None:
            raise NotAuthenticatedError("Aucun fournisseur d'authentification configuré")
        self.container = container
        self.user: Optional[User] = container.auth.current_user
        self._subscriptions.append(container.auth.observe_current_user(self._on_user))

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def sign_in(self, email: str, password: str) -> Optional[User]:
        return self._run(lambda: self.container.sign_in.execute(email, password))

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> Optional[User]:
        return self._run(lambda: self.container.sign_up.execute(email, password, display_name))

    def sign_out(self) -> None:
        self._run(self.container.sign_out.execute)

    def _on_user(self, user: Any) -> None:
        self.user = user
        self._notify()
