from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify

from ..container import Container
from ..http.auth import api_key_required, basic_auth_required, current_user
from ..http.request_utils import (
    arg,
    collection_response,
    concurrency_token,
    entity_response,
    json_body,
    no_content,
    optional_paging,
    paging,
)


def register(app: Flask, container: Container) -> None:
    login_required = basic_auth_required(container.auth_service)
    service = container.employee_service

    @app.route("/api/employees", methods=["GET"], endpoint="list_employees")
    @login_required
    def list_employees():
        limit, offset = paging()
        items, count = service.list_employees(
            current_user(),
            client_id=arg("client_id"),
            status=arg("status"),
            search=arg("search"),
            limit=limit,
            offset=offset,
        )
        return collection_response(items, count)

    @app.route("/api/employees/statistics", methods=["GET"], endpoint="employee_statistics")
    @login_required
    def employee_statistics():
        return jsonify(asdict(service.get_statistics(current_user(), client_id=arg("client_id"))))

    @app.route("/api/employees/anonymize-former", methods=["POST"], endpoint="anonymize_former_employees")
    @login_required
    def anonymize_former_employees():
        body = json_body()
        count = container.retention_service.anonymize_former_employees(current_user(), body.get("before"))
        return jsonify({"anonymized": count})

    @app.route("/api/employees", methods=["POST"], endpoint="create_employee")
    @login_required
    def create_employee():
        employee = service.create_employee(json_body(), user=current_user())
        return entity_response(employee, status=201, location=f"/api/employees/{employee.id}")

    @app.route("/api/employees/<employee_pk>", methods=["GET"], endpoint="get_employee")
    @login_required
    def get_employee(employee_pk: str):
        return entity_response(service.get_employee(current_user(), employee_pk))

    @app.route("/api/employees/<employee_pk>", methods=["PATCH", "PUT"], endpoint="update_employee")
    @login_required
    def update_employee(employee_pk: str):
        body = json_body()
        employee = service.update_employee(employee_pk, body, user=current_user(), token=concurrency_token(body))
        return entity_response(employee)

    @app.route("/api/employees/<employee_pk>", methods=["DELETE"], endpoint="delete_employee")
    @login_required
    def delete_employee(employee_pk: str):
        service.delete_employee(employee_pk, user=current_user(), token=concurrency_token())
        return no_content()

    @app.route("/api/active-employees", methods=["GET"], endpoint="active_employees")
    @api_key_required(container.api_key_verifier)
    def active_employees():
        limit, offset = optional_paging()
        rows = container.export_service.list_active_employees(limit=limit, offset=offset)
        return jsonify({"value": rows, "count": len(rows)})
