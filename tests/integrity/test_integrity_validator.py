from __future__ import annotations

import pytest

from src.hr_admin.hr_admin.core.exceptions import ValidationError
from tests.fakes import Store


def _store() -> Store:
    store = Store()
    store.add_client()
    store.add_client(id="c2", company_id="DE-1000", name="Beta AG")
    store.add_employee(id="m1", is_manager=True)
    store.add_employee(id="x1", client_id="c2", is_manager=True)
    store.add_cost_center(responsible_id="m1")
    store.add_cost_center(id="cc-x", client_id="c2", responsible_id="x1")
    store.add_location()
    store.add_location(id="l-x", client_id="c2")
    return store


def test_same_client_relations_pass():
    _store().integrity().validate_employee_relations(
        [{"client_id": "c1", "manager_id": "m1", "cost_center_id": "cc1", "location_id": "l1"}]
    )


@pytest.mark.parametrize(
    "field,value,label",
    [("manager_id", "x1", "Manager"), ("cost_center_id", "cc-x", "Cost center"), ("location_id", "l-x", "Location")],
)
def test_cross_client_employee_relations_fail(field, value, label):
    with pytest.raises(ValidationError, match=f"{label} {value} belongs to a different client"):
        _store().integrity().validate_employee_relations([{"client_id": "c1", field: value}])


def test_partial_update_falls_back_to_stored_client():
    store = _store()
    store.add_employee(id="e1")
    with pytest.raises(ValidationError):
        store.integrity().validate_employee_relations([{"id": "e1", "manager_id": "x1"}])


def test_missing_references_are_left_to_the_caller():
    _store().integrity().validate_employee_relations([{"client_id": "c1", "manager_id": "ghost"}])


def test_client_is_required():
    store = _store()
    with pytest.raises(ValidationError, match="Employee must reference a client"):
        store.integrity().validate_employee_relations([{"manager_id": "m1"}])
    with pytest.raises(ValidationError, match="Location must reference a client"):
        store.integrity().validate_location_relations([{"city": "Berlin"}])
    with pytest.raises(ValidationError, match="Cost center must reference a client"):
        store.integrity().validate_cost_center_relations([{"code": "X"}])


def test_cost_center_responsible_must_share_client():
    with pytest.raises(ValidationError, match="Responsible employee x1"):
        _store().integrity().validate_cost_center_relations([{"client_id": "c1", "responsible_id": "x1"}])


def test_lookups_are_cached_per_validator():
    store = _store()
    validator = store.integrity()
    rows = [{"client_id": "c1", "manager_id": "m1"}, {"client_id": "c1", "manager_id": "m1"}]
    validator.validate_employee_relations(rows)
    validator.validate_employee_relations(rows)

    assert store.lookup.calls == [("employees", ("m1",))]
    assert validator.client_of("employees", "m1") == "c1"
    assert validator.client_of("employees", "ghost") is None
