"""Aisle use-case unit tests."""

import pytest

from medistock.config import BACKEND_MEMORY, Settings
from medistock.container import Container, build_container
from medistock.models.errors import (
    AisleContainsMedicinesError,
    AisleNotFoundError,
    EmptyNameError,
    InvalidColorFormatError,
    NameAlreadyExistsError,
    TooManyAislesError,
)
from medistock.models.inventory import Aisle, HistoryActionType, Medicine
from medistock.repositories.memory import InMemoryRepositoryFactory
from medistock.validation import MAX_AISLES_PER_USER


def _create_container(repositories=None, user_id: str = "user-1") -> Container:
    return build_container(
        Settings(backend=BACKEND_MEMORY),
        user_id=user_id,
        repositories=repositories or InMemoryRepositoryFactory(),
    )


def _medicine(aisle_id: str) -> Medicine:
    return Medicine(
        name="Doliprane",
        unit="comprimés",
        current_quantity=20,
        max_quantity=100,
        warning_threshold=15,
        critical_threshold=5,
        aisle_id=aisle_id,
    )


class TestAddAisle:
    def test_add_assigns_id_and_trims_name(self):
        container = _create_container()
        aisle = container.add_aisle.execute(Aisle(name="  Pharmacie  "))
        assert aisle.id
        assert aisle.name == "Pharmacie"
        assert container.get_aisle.execute(aisle.id) == aisle

    def test_add_records_history(self):
        container = _create_container()
        aisle = container.add_aisle.execute(Aisle(name="Pharmacie"))
        entries = container.get_history.execute()
        assert len(entries) == 1
        assert entries[0].action == HistoryActionType.ADDITION.value
        assert entries[0].medicine_id == ""
        assert entries[0].metadata == {"aisleId": aisle.id}

    def test_invalid_aisle_rejected(self):
        container = _create_container()
        with pytest.raises(EmptyNameError):
            container.add_aisle.execute(Aisle(name=""))
        with pytest.raises(InvalidColorFormatError):
            container.add_aisle.execute(Aisle(name="Pharmacie", color_hex="#12345"))
        assert container.get_aisles.execute() == []

    def test_duplicate_name_case_insensitive(self):
        container = _create_container()
        container.add_aisle.execute(Aisle(name="Pharmacie"))
        with pytest.raises(NameAlreadyExistsError):
            container.add_aisle.execute(Aisle(name=" pharmacie "))

    def test_same_name_allowed_for_other_user(self):
        repositories = InMemoryRepositoryFactory()
        _create_container(repositories, "user-1").add_aisle.execute(Aisle(name="Pharmacie"))
        other = _create_container(repositories, "user-2").add_aisle.execute(Aisle(name="Pharmacie"))
        assert other.id

    def test_aisle_limit(self):
        container = _create_container()
        for i in range(MAX_AISLES_PER_USER):
            container.aisles.save_aisle(Aisle(name=f"Rayon {i}"))
        with pytest.raises(TooManyAislesError) as exc:
            container.add_aisle.execute(Aisle(name="Encore un"))
        assert exc.value.max_count == MAX_AISLES_PER_USER


class TestUpdateAisle:
    def test_update_keeps_created_at(self):
        container = _create_container()
        aisle = container.add_aisle.execute(Aisle(name="Pharmacie"))
        updated = container.update_aisle.execute(aisle.copy_with(name="Pharmacie centrale"))
        assert updated.name == "Pharmacie centrale"
        assert updated.created_at == aisle.created_at
        actions = [e.action for e in container.get_history.execute()]
        assert HistoryActionType.MODIFICATION.value in actions

    def test_keeping_own_name_is_allowed(self):
        container = _create_container()
        aisle = container.add_aisle.execute(Aisle(name="Pharmacie"))
        updated = container.update_aisle.execute(aisle.copy_with(description="Étagère A"))
        assert updated.description == "Étagère A"

    def test_rename_to_existing_name(self):
        container = _create_container()
        container.add_aisle.execute(Aisle(name="Pharmacie"))
        other = container.add_aisle.execute(Aisle(name="Urgences"))
        with pytest.raises(NameAlreadyExistsError):
            container.update_aisle.execute(other.copy_with(name="PHARMACIE"))

    def test_update_unknown(self):
        container = _create_container()
        with pytest.raises(AisleNotFoundError):
            container.update_aisle.execute(Aisle(name="Fantôme", id="missing"))


class TestDeleteAisle:
    def test_delete_empty_aisle(self):
        container = _create_container()
        aisle = container.add_aisle.execute(Aisle(name="Pharmacie"))
        container.delete_aisle.execute(aisle.id)
        assert container.get_aisles.execute() == []
        entries = container.get_history.execute()
        deletions = [e for e in entries if e.action == HistoryActionType.DELETION.value]
        assert len(deletions) == 1
        assert "Pharmacie" in deletions[0].details

    def test_delete_aisle_with_medicines(self):
        container = _create_container()
        aisle = container.add_aisle.execute(Aisle(name="Pharmacie"))
        container.add_medicine.execute(_medicine(aisle.id))
        with pytest.raises(AisleContainsMedicinesError) as exc:
            container.delete_aisle.execute(aisle.id)
        assert exc.value.count == 1
        assert container.get_aisle.execute(aisle.id) is not None

    def test_delete_unknown(self):
        container = _create_container()
        with pytest.raises(AisleNotFoundError):
            container.delete_aisle.execute("missing")


class TestAisleQueries:
    def test_search(self):
        container = _create_container()
        container.add_aisle.execute(Aisle(name="Pharmacie", description="Comprimés"))
        container.add_aisle.execute(Aisle(name="Urgences"))
        assert [a.name for a in container.search_aisle.execute("pharm")] == ["Pharmacie"]
        assert [a.name for a in container.search_aisle.execute("COMPRI")] == ["Pharmacie"]
        assert len(container.search_aisle.execute("")) == 2

    def test_medicine_count(self):
        container = _create_container()
        aisle = container.add_aisle.execute(Aisle(name="Pharmacie"))
        container.add_medicine.execute(_medicine(aisle.id))
        container.add_medicine.execute(_medicine(aisle.id).copy_with(name="Aspirine"))
        assert container.get_medicine_count_by_aisle.execute(aisle.id) == 2
        assert container.get_medicine_count_by_aisle.execute("other") == 0

    def test_get_unknown(self):
        container = _create_container()
        with pytest.raises(AisleNotFoundError):
            container.get_aisle.execute("missing")

    def test_pagination(self):
        container = _create_container()
        for i in range(25):
            container.aisles.save_aisle(Aisle(name=f"Rayon {i:02d}"))
        paginated = container.get_aisles_paginated

        first = paginated.execute(refresh=True)
        assert len(first) == 20
        assert paginated.has_more is True

        second = paginated.execute()
        assert len(second) == 5
        assert paginated.has_more is False
        assert paginated.execute() == []

        assert len(paginated.execute(refresh=True)) == 20
