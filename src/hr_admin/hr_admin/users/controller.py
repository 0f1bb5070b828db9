from __future__ import annotations

from flask import Flask, jsonify

from ..container import Container
from ..http.auth import basic_auth_required, current_user


def register(app: Flask, container: Container) -> None:
    login_required = basic_auth_required(container.auth_service)

    @app.route("/api/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        user = current_user()
        return jsonify(
            {
                "username": user.username,
                "roles": sorted(r.value for r in user.roles),
                "company_codes": list(user.company_codes),
                "can_write": user.can_write,
            }
        )
