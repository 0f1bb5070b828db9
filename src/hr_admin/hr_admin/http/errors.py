from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from ..core.exceptions import AuthenticationError, DomainError

logger = logging.getLogger(__name__)


def error_body(code: int, message: str):
    return jsonify({"error": {"code": code, "message": message}})


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = int(getattr(e, "status_code", 400) or 400)
        if status >= 500:
            logger.error("Domain error: %s", e)
        response = error_body(status, str(e) or "Request failed.")
        response.status_code = status
        if isinstance(e, AuthenticationError) and str(e) != "invalid_api_key":
            response.headers["WWW-Authenticate"] = 'Basic realm="hr-admin"'
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        response = error_body(e.code or 500, e.description or e.name)
        response.status_code = e.code or 500
        return response

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error")
        response = error_body(500, "Internal server error.")
        response.status_code = 500
        return response
