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
    service = container.client_service

    @app.route("/api/clients", methods=["GET"], endpoint="list_clients")
    @login_required
    def list_clients():
        limit, offset = paging()
        items, count = service.list_clients(current_user(), search=arg("search"), limit=limit, offset=offset)
        return collection_response(items, count)

    @app.route("/api/clients", methods=["POST"], endpoint="create_client")
    @login_required
    def create_client():
        client = service.create_client(json_body(), user=current_user())
        return entity_response(client, status=201, location=f"/api/clients/{client.id}")

    @app.route("/api/clients/<client_id>", methods=["GET"], endpoint="get_client")
    @login_required
    def get_client(client_id: str):
        return entity_response(service.get_client(current_user(), client_id))

    @app.route("/api/clients/<client_id>", methods=["PATCH", "PUT"], endpoint="update_client")
    @login_required
    def update_client(client_id: str):
        body = json_body()
        client = service.update_client(client_id, body, user=current_user(), token=concurrency_token(body))
        return entity_response(client)

    @app.route("/api/clients/<client_id>", methods=["DELETE"], endpoint="delete_client")
    @login_required
    def delete_client(client_id: str):
        service.delete_client(client_id, user=current_user(), token=concurrency_token())
        return no_content()

    @app.route("/api/clients/<client_id>/delete-preview", methods=["GET"], endpoint="client_delete_preview")
    @login_required
    def client_delete_preview(client_id: str):
        return jsonify(service.get_delete_preview(current_user(), client_id))
