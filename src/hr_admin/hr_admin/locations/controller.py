from __future__ import annotations

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
    service = container.location_service

    @app.route("/api/locations", methods=["GET"], endpoint="list_locations")
    @login_required
    def list_locations():
        limit, offset = paging()
        items, count = service.list_locations(
            current_user(), client_id=arg("client_id"), search=arg("search"), limit=limit, offset=offset
        )
        return collection_response(items, count)

    @app.route("/api/locations", methods=["POST"], endpoint="create_location")
    @login_required
    def create_location():
        location = service.create_location(json_body(), user=current_user())
        return entity_response(location, status=201, location=f"/api/locations/{location.id}")

    @app.route("/api/locations/<location_id>", methods=["GET"], endpoint="get_location")
    @login_required
    def get_location(location_id: str):
        return entity_response(service.get_location(current_user(), location_id))

    @app.route("/api/locations/<location_id>", methods=["PATCH", "PUT"], endpoint="update_location")
    @login_required
    def update_location(location_id: str):
        body = json_body()
        location = service.update_location(location_id, body, user=current_user(), token=concurrency_token(body))
        return entity_response(location)

    @app.route("/api/locations/<location_id>", methods=["DELETE"], endpoint="delete_location")
    @login_required
    def delete_location(location_id: str):
        service.delete_location(location_id, user=current_user(), token=concurrency_token())
        return no_content()

    @app.route("/api/locations/<location_id>/delete-preview", methods=["GET"], endpoint="location_delete_preview")
    @login_required
    def location_delete_preview(location_id: str):
        return jsonify(service.get_delete_preview(current_user(), location_id))
