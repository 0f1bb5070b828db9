from __future__ import annotations

import pytest

from src.hr_admin.hr_admin.common.concurrency import ConcurrencyToken, build_etag
from src.hr_admin.hr_admin.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from tests.fakes import ADMIN, EDITOR, OUTSIDER, VIEWER, Store


def _store() -> Store:
    store = Store()
    store.add_client()
    store.add_client(id="c2", company_id="DE-1000", name="Beta AG")
    return store


def test_create_client_normalizes_company_id_and_derives_country():
    store = _store()
    client = store.client_service().create_client({"company_id": " fr-200 ", "name": " Gamma SA "}, user=ADMIN)

    assert client.company_id == "FR-200"
    assert client.name == "Gamma SA"
    assert client.country_code == "FR"
    assert client.created_by == "admin"


def test_explicit_country_code_wins_over_derived_one():
    store = _store()
    client = store.client_service().create_client(
        {"company_id": "FR-201", "name": "Delta", "country_code": "be"}, user=ADMIN
    )
    assert client.country_code == "BE"


def test_invalid_country_code_is_rejected():
    with pytest.raises(ValidationError, match="Invalid country code"):
        _store().client_service().create_client({"company_id": "X1", "name": "X", "country_code": "ZZ"}, user=ADMIN)


def test_duplicate_company_id_conflicts():
    with pytest.raises(ConflictError):
        _store().client_service().create_client({"company_id": "de-1000", "name": "Copy"}, user=ADMIN)


def test_non_admin_cannot_create_client_for_foreign_company():
    with pytest.raises(AuthorizationError, match="company code not assigned"):
        _store().client_service().create_client({"company_id": "DE-2000", "name": "Other"}, user=EDITOR)


def test_viewer_cannot_write():
    with pytest.raises(AuthorizationError):
        _store().client_service().create_client({"company_id": "COMP-002", "name": "X"}, user=VIEWER)


def test_notification_endpoint_must_be_https():
    service = _store().client_service()
    with pytest.raises(ValidationError):
        service.create_client(
            {"company_id": "COMP-003", "name": "X", "notification_endpoint": "http://hooks.example.com"}, user=ADMIN
        )

    insecure = _store().client_service(allow_insecure_endpoints=True)
    client = insecure.create_client(
        {"company_id": "COMP-003", "name": "X", "notification_endpoint": "http://localhost:9000/hook"}, user=ADMIN
    )
    assert client.notification_endpoint == "http://localhost:9000/hook"


def test_list_is_scoped_to_assigned_company_codes():
    store = _store()
    items, count = store.client_service().list_clients(EDITOR)
    assert [c.id for c in items] == ["c1"]
    assert count == 1

    items, count = store.client_service().list_clients(ADMIN)
    assert count == 2


def test_out_of_scope_client_reads_as_not_found():
    with pytest.raises(NotFoundError):
        _store().client_service().get_client(OUTSIDER, "c1")


def test_update_with_stale_etag_fails():
    store = _store()
    current = store.clients.get_by_id("c1")
    service = store.client_service()
    updated = service.update_client(
        "c1", {"name": "Alpha Neu"}, user=EDITOR,
        token=ConcurrencyToken(header_value=build_etag(current.modified_at), has_http_headers=True),
    )
    assert updated.name == "Alpha Neu"

    with pytest.raises(PreconditionFailedError):
        service.update_client(
            "c1", {"name": "Again"}, user=EDITOR,
            token=ConcurrencyToken(header_value=build_etag(current.modified_at), has_http_headers=True),
        )


def test_update_keeps_country_when_company_id_unchanged():
    store = _store()
    store.clients.update("c1", {"country_code": "AT"}, modified_by="seed")
    updated = store.client_service().update_client("c1", {"name": "Renamed"}, user=ADMIN)
    assert updated.country_code == "AT"


def test_delete_preview_and_cascade():
    store = _store()
    store.add_employee(id="m1", is_manager=True)
    store.add_cost_center()
    store.add_location()
    store.add_assignment(employee_id="m1")
    service = store.client_service()

    preview = service.get_delete_preview(ADMIN, "c1")
    assert preview == {
        "client_name": "Alpha GmbH",
        "employee_count": 1,
        "cost_center_count": 1,
        "location_count": 1,
        "assignment_count": 1,
    }

    service.delete_client("c1", user=ADMIN, token=ConcurrencyToken(header_value="*", has_http_headers=True))
    assert store.clients.get_by_id("c1") is None
    assert not store.employees.items and not store.cost_centers.items
    assert not store.locations.items and not store.assignments.items


def test_delete_missing_client_is_not_found():
    with pytest.raises(NotFoundError):
        _store().client_service().delete_client("nope", user=ADMIN)
