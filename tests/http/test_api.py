from __future__ import annotations

import base64

import pytest
from werkzeug.security import generate_password_hash

from src.hr_admin.hr_admin.container import Container
from src.hr_admin.hr_admin.core.enums import Role
from src.hr_admin.hr_admin.main import create_app
from src.hr_admin.hr_admin.outbox.metrics import OutboxMetrics
from src.hr_admin.hr_admin.users.service import ApiKeyVerifier, AuthService
from tests.fakes import InMemoryUsers, Store, make_user

USERS = InMemoryUsers(
    [
        make_user("admin", generate_password_hash("admin123"), {Role.ADMIN}, user_id=1),
        make_user("editor", generate_password_hash("editor123"), {Role.EDITOR}, ["COMP-001"], user_id=2),
        make_user("viewer", generate_password_hash("viewer123"), {Role.VIEWER}, ["DE-1000"], user_id=3),
    ]
)


def _basic(username, password):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


ADMIN = _basic("admin", "admin123")
EDITOR = _basic("editor", "editor123")
VIEWER = _basic("viewer", "viewer123")


@pytest.fixture()
def store():
    store = Store()
    store.add_client()
    store.add_client(id="c2", company_id="DE-1000", name="Beta AG")
    store.add_employee(id="m1", is_manager=True, last_name="Boss")
    store.add_cost_center(responsible_id="m1")
    return store


@pytest.fixture()
def client(store, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    container = Container(
        auth_service=AuthService(USERS),
        api_key_verifier=ApiKeyVerifier("test-api-key"),
        client_service=store.client_service(),
        location_service=store.location_service(),
        cost_center_service=store.cost_center_service(),
        employee_service=store.employee_service(),
        retention_service=store.retention_service(),
        export_service=store.export_service(),
        assignment_service=store.assignment_service(),
        outbox_metrics=OutboxMetrics(),
    )
    app = create_app(container=container)
    return app.test_client()


def test_requests_without_credentials_are_challenged(client):
    response = client.get("/api/clients")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"].startswith("Basic")
    assert response.get_json()["error"]["code"] == 401


def test_wrong_password(client):
    assert client.get("/api/clients", headers=_basic("admin", "nope")).status_code == 401


def test_me(client):
    body = client.get("/api/me", headers=EDITOR).get_json()
    assert body == {"username": "editor", "roles": ["HREditor"], "company_codes": ["COMP-001"], "can_write": True}


def test_list_clients_is_scoped_and_paged(client):
    body = client.get("/api/clients", headers=ADMIN).get_json()
    assert body["count"] == 2

    body = client.get("/api/clients?$top=1&$skip=1", headers=ADMIN).get_json()
    assert len(body["value"]) == 1 and body["count"] == 2

    body = client.get("/api/clients", headers=VIEWER).get_json()
    assert [c["company_id"] for c in body["value"]] == ["DE-1000"]


def test_paging_limits(client):
    assert client.get("/api/clients?$top=1001", headers=ADMIN).status_code == 400
    assert client.get("/api/clients?$skip=-1", headers=ADMIN).status_code == 400


def test_create_and_read_client_with_etag(client):
    response = client.post("/api/clients", json={"company_id": "fr-9", "name": "Gamma"}, headers=ADMIN)
    assert response.status_code == 201
    created = response.get_json()
    assert created["country_code"] == "FR"
    assert response.headers["Location"] == f"/api/clients/{created['id']}"
    assert response.headers["ETag"].startswith('W/"')

    fetched = client.get(f"/api/clients/{created['id']}", headers=ADMIN)
    assert fetched.headers["ETag"] == response.headers["ETag"]


def test_update_requires_a_version(client):
    response = client.patch("/api/clients/c1", json={"name": "X"}, headers=ADMIN)
    assert response.status_code == 428


def test_update_with_if_match_then_stale_etag(client):
    etag = client.get("/api/clients/c1", headers=ADMIN).headers["ETag"]
    ok = client.patch("/api/clients/c1", json={"name": "Alpha Neu"}, headers={**ADMIN, "If-Match": etag})
    assert ok.status_code == 200
    assert ok.get_json()["name"] == "Alpha Neu"
    assert ok.headers["ETag"] != etag

    stale = client.patch("/api/clients/c1", json={"name": "Again"}, headers={**ADMIN, "If-Match": etag})
    assert stale.status_code == 412


def test_update_with_modified_at_in_body(client):
    current = client.get("/api/clients/c1", headers=ADMIN).get_json()
    response = client.patch(
        "/api/clients/c1", json={"name": "Body Version", "modified_at": current["modified_at"]}, headers=ADMIN
    )
    assert response.status_code == 200


def test_viewer_cannot_write_and_foreign_company_is_forbidden(client):
    assert client.post("/api/clients", json={"company_id": "DE-1000", "name": "x"}, headers=VIEWER).status_code == 403
    response = client.post("/api/clients", json={"company_id": "DE-2000", "name": "x"}, headers=EDITOR)
    assert response.status_code == 403
    assert response.get_json()["error"]["message"] == "Forbidden: company code not assigned"


def test_out_of_scope_entity_is_not_found(client):
    assert client.get("/api/clients/c1", headers=VIEWER).status_code == 404
    assert client.get("/api/employees/m1", headers=VIEWER).status_code == 404


def test_invalid_json_body(client):
    response = client.post("/api/clients", data="{nope", headers={**ADMIN, "Content-Type": "application/json"})
    assert response.status_code == 400


def test_duplicate_company_conflict(client):
    response = client.post("/api/clients", json={"company_id": "comp-001", "name": "Dup"}, headers=ADMIN)
    assert response.status_code == 409


def test_client_delete_preview_and_delete(client, store):
    preview = client.get("/api/clients/c1/delete-preview", headers=ADMIN).get_json()
    assert preview["client_name"] == "Alpha GmbH"
    assert preview["employee_count"] == 1

    response = client.delete("/api/clients/c1", headers={**ADMIN, "If-Match": "*"})
    assert response.status_code == 204
    assert store.clients.get_by_id("c1") is None


def test_employee_lifecycle(client, store):
    response = client.post(
        "/api/employees",
        json={
            "first_name": "Max",
            "last_name": "Muster",
            "email": "max@example.com",
            "entry_date": "2025-01-01",
            "client_id": "c1",
            "cost_center_id": "cc1",
        },
        headers=EDITOR,
    )
    assert response.status_code == 201
    created = response.get_json()
    assert created["manager_id"] == "m1"
    assert created["status"] == "active"
    assert created["entry_date"] == "2025-01-01"

    etag = response.headers["ETag"]
    updated = client.patch(
        f"/api/employees/{created['id']}",
        json={"status": "inactive", "exit_date": "2025-06-30"},
        headers={**EDITOR, "If-Match": etag},
    )
    assert updated.status_code == 200

    listed = client.get("/api/employees?status=inactive", headers=EDITOR).get_json()
    assert [e["id"] for e in listed["value"]] == [created["id"]]

    stats = client.get("/api/employees/statistics", headers=EDITOR).get_json()
    assert stats["total"] == 2 and stats["inactive"] == 1

    deleted = client.delete(f"/api/employees/{created['id']}", headers={**EDITOR, "If-Match": updated.headers["ETag"]})
    assert deleted.status_code == 204


def test_anonymize_former_employees_endpoint(client, store):
    from datetime import date

    from src.hr_admin.hr_admin.core.enums import EmployeeStatus

    store.add_employee(id="old", status=EmployeeStatus.INACTIVE, exit_date=date(2018, 1, 1))
    response = client.post("/api/employees/anonymize-former", json={"before": "2020-01-01"}, headers=ADMIN)
    assert response.get_json() == {"anonymized": 1}
    assert client.post("/api/employees/anonymize-former", json={}, headers=ADMIN).status_code == 400


def test_active_employee_export_requires_api_key(client):
    response = client.get("/api/active-employees")
    assert response.status_code == 401
    assert "WWW-Authenticate" not in response.headers
    assert response.get_json()["error"]["message"] == "invalid_api_key"

    response = client.get("/api/active-employees", headers={"X-API-Key": "test-api-key"})
    assert response.status_code == 200
    body = response.get_json()
    assert body["count"] == 1
    assert body["value"][0]["externalId"] == "M1"

    response = client.get("/api/active-employees", headers={"Authorization": "ApiKey test-api-key"})
    assert response.status_code == 200


def test_assignment_and_location_routes(client):
    location = client.post(
        "/api/locations",
        json={"client_id": "c1", "city": "Köln", "country_code": "DE", "zip_code": "50667", "street": "Dom 1",
              "valid_from": "2024-01-01"},
        headers=ADMIN,
    )
    assert location.status_code == 201

    assignment = client.post(
        "/api/assignments",
        json={"employee_id": "m1", "cost_center_id": "cc1", "client_id": "c1", "valid_from": "2024-01-01"},
        headers=ADMIN,
    )
    assert assignment.status_code == 201
    listed = client.get("/api/assignments?employee_id=m1", headers=ADMIN).get_json()
    assert listed["count"] == 1

    bad = client.post(
        "/api/assignments",
        json={"employee_id": "m1", "cost_center_id": "cc1", "client_id": "c1"},
        headers=ADMIN,
    )
    assert bad.status_code == 400


def test_health_and_security_headers(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["outbox"]["scheduler_running"] is False
    assert response.headers["X-Content-Type-Options"] == "nosniff"

    api = client.get("/api/me", headers=ADMIN)
    assert api.headers["Cache-Control"] == "no-store"
