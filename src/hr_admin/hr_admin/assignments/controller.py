from __future__ import annotations

from flask import Flask

from ..container import Container
from ..http.auth import basic_auth_required, current_user
from ..http.request_utils import (
    arg,
    collection_response,
    concurrency_token,
    entity_response,
    json_body,
    no_content,
    paging,
)


def register(app: Flask, container: Container) -> None:
    login_required = basic_auth_required(container.auth_service)
    service = container.assignment_service

    @app.route("/api/assignments", methods=["GET"], endpoint="list_assignments")
    @login_required
    def list_assignments():
        limit, offset = paging()
        items, count = service.list_assignments(
            current_user(),
            client_id=arg("client_id"),
            employee_id=arg("employee_id"),
            cost_center_id=arg("cost_center_id"),
            limit=limit,
            offset=offset,
        )
        return collection_response(items, count)

    @app.route("/api/assignments", methods=["POST"], endpoint="create_assignment")
    @login_required
    def create_assignment():
        assignment = service.create_assignment(json_body(), user=current_user())
        return entity_response(assignment, status=201, location=f"/api/assignments/{assignment.id}")

    @app.route("/api/assignments/<assignment_id>", methods=["GET"], endpoint="get_assignment")
    @login_required
    def get_assignment(assignment_id: str):
        return entity_response(service.get_assignment(current_user(), assignment_id))

    @app.route("/api/assignments/<assignment_id>", methods=["PATCH", "PUT"], endpoint="update_assignment")
    @login_required
    def update_assignment(assignment_id: str):
        body = json_body()
        assignment = service.update_assignment(assignment_id, body, user=current_user(), token=concurrency_token(body))
        return entity_response(assignment)

    @app.route("/api/assignments/<assignment_id>", methods=["DELETE"], endpoint="delete_assignment")
    @login_required
    def delete_assignment(assignment_id: str):
        service.delete_assignment(assignment_id, user=current_user(), token=concurrency_token())
        return no_content()
