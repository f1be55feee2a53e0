"""View-model state and error surfacing tests."""

from unittest.mock import MagicMock

import pytest

from medistock.config import BACKEND_MEMORY, Settings
from medistock.container import build_container
from medistock.models.errors import GENERIC_ERROR_MESSAGE, NotAuthenticatedError, RepositoryError
from medistock.models.inventory import STOCK_REMOVED_ACTION, Aisle, Medicine
from medistock.repositories.memory import InMemoryRepositoryFactory
from medistock.viewmodels import (
    AisleListViewModel,
    AuthViewModel,
    HistoryViewModel,
    MedicineDetailViewModel,
    MedicineListViewModel,
)


def _create_container(cache_dir=None, **kwargs):
    settings = Settings(backend=BACKEND_MEMORY)
    if cache_dir is not None:
        settings = Settings(backend=BACKEND_MEMORY, cache_dir=str(cache_dir))
    return build_container(
        settings,
        user_id="user-1",
        repositories=InMemoryRepositoryFactory(),
        **kwargs,
    )


def _seed(container, *names: str) -> Aisle:
    aisle = container.add_aisle.execute(Aisle(name="Pharmacie"))
    for name in names:
        container.add_medicine.execute(Medicine(
            name=name, unit="comprimés", current_quantity=20, max_quantity=100,
            warning_threshold=15, critical_threshold=5, aisle_id=aisle.id,
        ))
    return aisle


class TestMedicineListViewModel:
    def test_load_and_filter(self, tmp_path):
        container = _create_container(tmp_path)
        _seed(container, "Doliprane", "Aspirine")
        vm = MedicineListViewModel(container)
        vm.load()
        assert [m.name for m in vm.medicines] == ["Aspirine", "Doliprane"]
        vm.search("doli")
        assert [m.name for m in vm.filtered_medicines] == ["Doliprane"]
        vm.filter_by_aisle("other")
        assert vm.filtered_medicines == []
        assert vm.error_message is None
        assert not vm.is_loading

    def test_observers_notified(self, tmp_path):
        container = _create_container(tmp_path)
        vm = MedicineListViewModel(container)
        calls = []
        remove = vm.add_observer(calls.append)
        vm.load()
        assert len(calls) == 2
        remove()
        vm.load()
        assert len(calls) == 2

    def test_business_error_surfaces_message(self):
        container = _create_container()
        vm = MedicineListViewModel(container)
        vm.delete("missing")
        assert vm.error_message == "Le médicament demandé n'a pas été trouvé."
        vm.clear_error()
        assert vm.error_message is None

    def test_unexpected_error_is_generic(self):
        container = _create_container()
        container.get_medicines = MagicMock()
        container.get_medicines.execute.side_effect = RuntimeError("boom")
        vm = MedicineListViewModel(container)
        vm.load()
        assert vm.error_message == GENERIC_ERROR_MESSAGE
        assert not vm.is_loading

    def test_paging(self):
        container = _create_container()
        _seed(container, *[f"Médicament {i:02d}" for i in range(25)])
        vm = MedicineListViewModel(container)
        vm.load_first_page()
        assert len(vm.medicines) == 20
        assert vm.has_more
        vm.load_more()
        assert len(vm.medicines) == 25
        assert not vm.has_more
        vm.load_more()
        assert len(vm.medicines) == 25

    def test_live_updates(self):
        container = _create_container()
        vm = MedicineListViewModel(container)
        vm.start_observing()
        aisle = _seed(container, "Doliprane")
        assert [m.name for m in vm.medicines] == ["Doliprane"]
        vm.close()
        container.add_medicine.execute(Medicine(
            name="Aspirine", unit="comprimés", current_quantity=20, max_quantity=100,
            warning_threshold=15, critical_threshold=5, aisle_id=aisle.id,
        ))
        assert [m.name for m in vm.medicines] == ["Doliprane"]

    def test_critical_medicines(self, tmp_path):
        container = _create_container(tmp_path)
        _seed(container, "Doliprane")
        vm = MedicineListViewModel(container)
        vm.load()
        medicine = vm.medicines[0]
        container.adjust_stock.execute(medicine.id, -15, "Dispensation")
        vm.load()
        assert [m.name for m in vm.critical_medicines] == ["Doliprane"]

    def test_storage_failure_falls_back_to_cache(self, tmp_path):
        container = _create_container(tmp_path)
        _seed(container, "Doliprane", "Aspirine")
        vm = MedicineListViewModel(container)
        vm.load()
        assert not vm.from_cache
        assert container.cache.fetch_medicines("medicines_user-1")

        container.get_medicines = MagicMock()
        container.get_medicines.execute.side_effect = RepositoryError()
        vm.load()
        assert vm.from_cache
        assert [m.name for m in vm.medicines] == ["Aspirine", "Doliprane"]
        assert vm.error_message is None

    def test_storage_failure_without_cache(self, tmp_path):
        container = _create_container(tmp_path)
        container.get_medicines = MagicMock()
        container.get_medicines.execute.side_effect = RepositoryError()
        vm = MedicineListViewModel(container)
        vm.load()
        assert vm.error_message == RepositoryError().message
        assert vm.medicines == []


class TestMedicineDetailViewModel:
    def test_save_then_adjust(self):
        container = _create_container()
        aisle = _seed(container)
        vm = MedicineDetailViewModel(container)
        saved = vm.save(Medicine(
            name="Doliprane", unit="comprimés", current_quantity=20, max_quantity=100,
            warning_threshold=15, critical_threshold=5, aisle_id=aisle.id,
        ))
        assert vm.medicine_id == saved.id

        updated = vm.adjust_stock(-5, "Dispensation")
        assert updated.current_quantity == 15
        assert any(e.action == STOCK_REMOVED_ACTION for e in vm.history)

    def test_rejected_adjustment(self):
        container = _create_container()
        _seed(container, "Doliprane")
        medicine = container.get_medicines.execute()[0]
        vm = MedicineDetailViewModel(container, medicine.id)
        vm.load()
        assert vm.update_stock(500, "Inventaire") is None
        assert vm.error_message
        assert vm.medicine.current_quantity == 20

    def test_delete(self):
        container = _create_container()
        _seed(container, "Doliprane")
        medicine = container.get_medicines.execute()[0]
        vm = MedicineDetailViewModel(container, medicine.id)
        assert vm.delete() is True
        assert container.get_medicines.execute() == []


class TestAisleListViewModel:
    def test_load_counts(self):
        container = _create_container()
        aisle = _seed(container, "Doliprane", "Aspirine")
        vm = AisleListViewModel(container)
        vm.load()
        assert vm.medicine_counts == {aisle.id: 2}

    def test_save_and_delete(self):
        container = _create_container()
        vm = AisleListViewModel(container)
        saved = vm.save(Aisle(name="Urgences"))
        assert [a.name for a in vm.aisles] == ["Urgences"]
        vm.save(saved.copy_with(name="Urgences 2"))
        assert [a.name for a in vm.aisles] == ["Urgences 2"]
        vm.delete(saved.id)
        assert vm.aisles == []

    def test_delete_non_empty_aisle(self):
        container = _create_container()
        aisle = _seed(container, "Doliprane")
        vm = AisleListViewModel(container)
        vm.load()
        vm.delete(aisle.id)
        assert "1" in vm.error_message
        assert len(vm.aisles) == 1


class TestHistoryViewModel:
    def test_action_filter(self):
        container = _create_container()
        _seed(container, "Doliprane")
        vm = HistoryViewModel(container)
        vm.load()
        assert len(vm.entries) == 2
        vm.action_filter = "Ajout"
        assert len(vm.filtered_entries) == 2
        vm.action_filter = "Suppression"
        assert vm.filtered_entries == []

    def test_recent(self):
        container = _create_container()
        _seed(container, "A", "B", "C")
        vm = HistoryViewModel(container)
        vm.load_recent(2)
        assert len(vm.entries) == 2

    def test_invalid_medicine_id(self):
        vm = HistoryViewModel(_create_container())
        vm.load_for_medicine("")
        assert vm.error_message == "L'identifiant est invalide"


class TestAuthViewModel:
    def test_requires_auth_provider(self):
        with pytest.raises(NotAuthenticatedError):
            AuthViewModel(_create_container())

    def test_sign_in_flow(self):
        cognito = MagicMock()
        cognito.initiate_auth.return_value = {"AuthenticationResult": {"AccessToken": "t"}}
        cognito.get_user.return_value = {
            "Username": "u", "UserAttributes": [{"Name": "sub", "Value": "user-1"}],
        }
        vm = AuthViewModel(_create_container(cognito_client=cognito))
        assert not vm.is_authenticated
        vm.sign_in("nurse@example.com", "secret1")
        assert vm.is_authenticated
        vm.sign_out()
        assert not vm.is_authenticated

    def test_sign_up_error(self):
        cognito = MagicMock()
        vm = AuthViewModel(_create_container(cognito_client=cognito))
        assert vm.sign_up("nurse@example.com", "123") is None
        assert vm.error_message == "Le mot de passe est trop faible. Utilisez au moins 6 caractères."
