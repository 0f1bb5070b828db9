from __future__ import annotations

from datetime import date

import pytest

from src.hr_admin.hr_admin.core.exceptions import ConflictError, NotFoundError, ValidationError
from tests.fakes import ADMIN, EDITOR, Store


def _store() -> Store:
    store = Store()
    store.add_client()
    store.add_client(id="c2", company_id="DE-1000", name="Beta AG")
    store.add_employee(id="m1", is_manager=True)
    store.add_employee(id="x1", client_id="c2", is_manager=True)
    return store


def test_create_cost_center():
    cost_center = _store().cost_center_service().create_cost_center(
        {"code": " sales-1 ", "name": "Sales", "client_id": "c1", "responsible_id": "m1", "valid_from": "2025-01-01"},
        user=EDITOR,
    )
    assert cost_center.code == "SALES-1"
    assert cost_center.responsible_id == "m1"
    assert cost_center.valid_from == date(2025, 1, 1)


def test_responsible_must_exist_and_share_client():
    service = _store().cost_center_service()
    base = {"code": "CC", "name": "CC", "client_id": "c1"}
    with pytest.raises(ValidationError, match="Responsible employee is required"):
        service.create_cost_center(base, user=ADMIN)
    with pytest.raises(NotFoundError):
        service.create_cost_center({**base, "responsible_id": "ghost"}, user=ADMIN)
    with pytest.raises(ValidationError, match="same client"):
        service.create_cost_center({**base, "responsible_id": "x1"}, user=ADMIN)


def test_code_is_unique_per_client():
    store = _store()
    store.add_cost_center(code="SALES")
    service = store.cost_center_service()
    with pytest.raises(ConflictError):
        service.create_cost_center({"code": "sales", "name": "Dup", "client_id": "c1", "responsible_id": "m1"}, user=ADMIN)

    store.add_employee(id="m2", client_id="c2", is_manager=True)
    other = service.create_cost_center(
        {"code": "sales", "name": "Other client", "client_id": "c2", "responsible_id": "m2"}, user=ADMIN
    )
    assert other.client_id == "c2"


def test_validity_order():
    with pytest.raises(ValidationError):
        _store().cost_center_service().create_cost_center(
            {
                "code": "CC",
                "name": "CC",
                "client_id": "c1",
                "responsible_id": "m1",
                "valid_from": "2025-02-01",
                "valid_to": "2025-01-01",
            },
            user=ADMIN,
        )


def test_update_keeps_code_check_quiet_for_same_record():
    store = _store()
    store.add_cost_center(code="SALES")
    updated = store.cost_center_service().update_cost_center("cc1", {"code": "sales", "name": "Renamed"}, user=ADMIN)
    assert updated.name == "Renamed"


def test_delete_detaches_employees_and_removes_assignments():
    store = _store()
    store.add_cost_center()
    store.add_employee(id="e1", cost_center_id="cc1", manager_id="m1")
    store.add_assignment()
    service = store.cost_center_service()

    preview = service.get_delete_preview(ADMIN, "cc1")
    assert preview["employee_count"] == 1 and preview["assignment_count"] == 1

    service.delete_cost_center("cc1", user=ADMIN)
    assert store.employees.get_by_id("e1").cost_center_id is None
    assert not store.assignments.items


def test_statistics_scope():
    store = _store()
    store.add_cost_center()
    store.add_cost_center(id="cc2", client_id="c2", responsible_id="x1")
    stats = store.cost_center_service().get_statistics(EDITOR)
    assert stats.total == 1
    assert store.cost_center_service().get_statistics(ADMIN).total == 2
