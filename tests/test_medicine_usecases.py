"""Medicine use-case unit tests."""

from datetime import datetime, timedelta, timezone

import pytest

from medistock.config import BACKEND_MEMORY, Settings
from medistock.container import Container, build_container
from medistock.models.errors import (
    ExpiredDateError,
    InvalidAisleReferenceError,
    InvalidThresholdsError,
    MedicineNotFoundError,
    TooManyMedicinesError,
)
from medistock.models.inventory import Aisle, HistoryActionType, Medicine, utcnow
from medistock.repositories.memory import InMemoryRepositoryFactory


def _create_container(repositories=None, user_id: str = "user-1") -> Container:
    return build_container(
        Settings(backend=BACKEND_MEMORY),
        user_id=user_id,
        repositories=repositories or InMemoryRepositoryFactory(),
    )


def _medicine(aisle_id: str, **overrides) -> Medicine:
    values = dict(
        name="Doliprane",
        unit="comprimés",
        current_quantity=20,
        max_quantity=100,
        warning_threshold=15,
        critical_threshold=5,
        aisle_id=aisle_id,
        reference="DOL-500",
    )
    values.update(overrides)
    return Medicine(**values)


def _with_aisle(container: Container) -> str:
    return container.add_aisle.execute(Aisle(name="Pharmacie")).id


class TestAddMedicine:
    def test_add_and_fetch_round_trip(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        saved = container.add_medicine.execute(_medicine(aisle_id, name="  Doliprane  "))
        assert saved.id
        assert saved.name == "Doliprane"
        assert container.get_medicine.execute(saved.id) == saved

    def test_naive_expiry_date_round_trip(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        saved = container.add_medicine.execute(_medicine(aisle_id, expiry_date=datetime(2030, 1, 1)))
        assert saved.expiry_date == datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert container.get_medicine.execute(saved.id) == saved

    def test_client_id_is_ignored(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        saved = container.add_medicine.execute(_medicine(aisle_id, id="client-id"))
        assert saved.id != "client-id"

    def test_add_records_history(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        saved = container.add_medicine.execute(_medicine(aisle_id))
        entries = container.get_history_for_medicine.execute(saved.id)
        assert len(entries) == 1
        assert entries[0].action == HistoryActionType.ADDITION.value
        assert entries[0].details == "Médicament: Doliprane"
        assert entries[0].user_id == "user-1"

    def test_unknown_aisle(self):
        container = _create_container()
        with pytest.raises(InvalidAisleReferenceError) as exc:
            container.add_medicine.execute(_medicine("missing"))
        assert exc.value.aisle_id == "missing"

    def test_invalid_thresholds(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        with pytest.raises(InvalidThresholdsError):
            container.add_medicine.execute(_medicine(aisle_id, critical_threshold=20))
        assert container.get_medicines.execute() == []

    def test_expired_on_add(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        with pytest.raises(ExpiredDateError):
            container.add_medicine.execute(
                _medicine(aisle_id, expiry_date=utcnow() - timedelta(days=2))
            )

    def test_medicine_limit(self, monkeypatch):
        monkeypatch.setattr("medistock.usecases.medicine.MAX_MEDICINES_PER_USER", 2)
        container = _create_container()
        aisle_id = _with_aisle(container)
        container.add_medicine.execute(_medicine(aisle_id, name="A"))
        container.add_medicine.execute(_medicine(aisle_id, name="B"))
        with pytest.raises(TooManyMedicinesError):
            container.add_medicine.execute(_medicine(aisle_id, name="C"))

    def test_aisle_of_other_user_rejected(self):
        repositories = InMemoryRepositoryFactory()
        other_aisle = _with_aisle(_create_container(repositories, "user-2"))
        container = _create_container(repositories, "user-1")
        with pytest.raises(InvalidAisleReferenceError):
            container.add_medicine.execute(_medicine(other_aisle))


class TestUpdateMedicine:
    def test_update_keeps_created_at(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        saved = container.add_medicine.execute(_medicine(aisle_id))
        updated = container.update_medicine.execute(saved.copy_with(dosage="500mg"))
        assert updated.dosage == "500mg"
        assert updated.created_at == saved.created_at
        actions = [e.action for e in container.get_history_for_medicine.execute(saved.id)]
        assert HistoryActionType.MODIFICATION.value in actions

    def test_unchanged_past_expiry_does_not_block(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        stale = container.medicines.save_medicine(
            _medicine(aisle_id, expiry_date=utcnow() - timedelta(days=5))
        )
        updated = container.update_medicine.execute(stale.copy_with(name="Doliprane 1000"))
        assert updated.name == "Doliprane 1000"

    def test_changed_expiry_in_past_rejected(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        saved = container.add_medicine.execute(_medicine(aisle_id))
        with pytest.raises(ExpiredDateError):
            container.update_medicine.execute(
                saved.copy_with(expiry_date=utcnow() - timedelta(days=3))
            )

    def test_update_unknown(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        with pytest.raises(MedicineNotFoundError):
            container.update_medicine.execute(_medicine(aisle_id, id="missing"))

    def test_update_without_id(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        with pytest.raises(MedicineNotFoundError):
            container.update_medicine.execute(_medicine(aisle_id))


class TestDeleteMedicine:
    def test_delete(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        saved = container.add_medicine.execute(_medicine(aisle_id))
        container.delete_medicine.execute(saved.id)
        with pytest.raises(MedicineNotFoundError):
            container.get_medicine.execute(saved.id)
        entries = container.get_history_for_medicine.execute(saved.id)
        deletions = [e for e in entries if e.action == HistoryActionType.DELETION.value]
        assert deletions[0].details == "Médicament supprimé: Doliprane"

    def test_delete_unknown(self):
        container = _create_container()
        with pytest.raises(MedicineNotFoundError):
            container.delete_medicine.execute("missing")


class TestMedicineQueries:
    def test_search_is_case_insensitive(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        container.add_medicine.execute(_medicine(aisle_id))
        container.add_medicine.execute(
            _medicine(aisle_id, name="Aspirine", reference="ASP-1", description="Anti-douleur")
        )
        assert [m.name for m in container.search_medicine.execute("doli")] == ["Doliprane"]
        assert [m.name for m in container.search_medicine.execute("asp-1")] == ["Aspirine"]
        assert [m.name for m in container.search_medicine.execute("DOULEUR")] == ["Aspirine"]
        assert len(container.search_medicine.execute("  ")) == 2

    def test_list_is_sorted_by_name(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        container.add_medicine.execute(_medicine(aisle_id, name="Zyrtec"))
        container.add_medicine.execute(_medicine(aisle_id, name="Aspirine"))
        assert [m.name for m in container.get_medicines.execute()] == ["Aspirine", "Zyrtec"]

    def test_users_are_isolated(self):
        repositories = InMemoryRepositoryFactory()
        owner = _create_container(repositories, "user-1")
        saved = owner.add_medicine.execute(_medicine(_with_aisle(owner)))
        intruder = _create_container(repositories, "user-2")
        assert intruder.get_medicines.execute() == []
        with pytest.raises(MedicineNotFoundError):
            intruder.get_medicine.execute(saved.id)

    def test_pagination(self):
        container = _create_container()
        aisle_id = _with_aisle(container)
        for i in range(3):
            container.medicines.save_medicine(_medicine(aisle_id, name=f"Médicament {i}"))
        container.get_medicines_paginated.page_size = 2

        assert len(container.get_medicines_paginated.execute(refresh=True)) == 2
        assert container.get_medicines_paginated.has_more is True
        assert len(container.get_medicines_paginated.execute()) == 1
        assert container.get_medicines_paginated.has_more is False
