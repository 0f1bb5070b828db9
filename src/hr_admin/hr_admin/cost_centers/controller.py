from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify

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
    service = container.cost_center_service

    @app.route("/api/cost-centers", methods=["GET"], endpoint="list_cost_centers")
    @login_required
    def list_cost_centers():
        limit, offset = paging()
        items, count = service.list_cost_centers(
            current_user(), client_id=arg("client_id"), search=arg("search"), limit=limit, offset=offset
        )
        return collection_response(items, count)

    @app.route("/api/cost-centers/statistics", methods=["GET"], endpoint="cost_center_statistics")
    @login_required
    def cost_center_statistics():
        return jsonify(asdict(service.get_statistics(current_user(), client_id=arg("client_id"))))

    @app.route("/api/cost-centers", methods=["POST"], endpoint="create_cost_center")
    @login_required
    def create_cost_center():
        cost_center = service.create_cost_center(json_body(), user=current_user())
        return entity_response(cost_center, status=201, location=f"/api/cost-centers/{cost_center.id}")

    @app.route("/api/cost-centers/<cost_center_id>", methods=["GET"], endpoint="get_cost_center")
    @login_required
    def get_cost_center(cost_center_id: str):
        return entity_response(service.get_cost_center(current_user(), cost_center_id))

    @app.route("/api/cost-centers/<cost_center_id>", methods=["PATCH", "PUT"], endpoint="update_cost_center")
    @login_required
    def update_cost_center(cost_center_id: str):
        body = json_body()
        cost_center = service.update_cost_center(
            cost_center_id, body, user=current_user(), token=concurrency_token(body)
        )
        return entity_response(cost_center)

    @app.route("/api/cost-centers/<cost_center_id>", methods=["DELETE"], endpoint="delete_cost_center")
    @login_required
    def delete_cost_center(cost_center_id: str):
        service.delete_cost_center(cost_center_id, user=current_user(), token=concurrency_token())
        return no_content()

    @app.route(
        "/api/cost-centers/<cost_center_id>/delete-preview", methods=["GET"], endpoint="cost_center_delete_preview"
    )
    @login_required
    def cost_center_delete_preview(cost_center_id: str):
        return jsonify(service.get_delete_preview(current_user(), cost_center_id))
