"""Flask application factory."""

from __future__ import annotations

import logging

from flask import Flask, Response
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from api.errors import format_error
from api.middleware import handle_unexpected, write_error_response
from api.routes import api_bp
from config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def create_app() -> Flask:
    """Create and configure the Flask application."""
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.flask_secret_key
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_size_mb * 1024 * 1024

    CORS(app, origins=settings.cors_origins, expose_headers=["X-Request-ID", "X-Error-Code"])

    app.register_blueprint(api_bp)

    # --- Error handlers ---
    # Failures raised outside a view (unknown URL, wrong method, oversized
    # body) get the same envelope as failures inside one.

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException) -> Response:
        resp, _ = write_error_response(format_error(e))
        return resp

    @app.errorhandler(Exception)
    def unhandled_error(e: Exception) -> Response:
        return handle_unexpected(e)

    return app
