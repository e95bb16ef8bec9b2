"""JSON error handlers for the application."""
from __future__ import annotations
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from identity_manager.api.context import correlation_id
from identity_manager.core.errors import IdentityError

logger = logging.getLogger(__name__)


def _server_error():
    """Generic 500 body; internal detail stays in the logs."""
    return jsonify({
        "error": "Internal Server Error",
        "message": "An unexpected error occurred",
        "correlationId": correlation_id(),
    }), 500


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(IdentityError)
    def identity_error(error: IdentityError):
        """Map the core error taxonomy onto HTTP status codes."""
        if error.is_client_error:
            return jsonify(error.to_dict()), error.status
        logger.error("Store failure (correlation_id=%s): %s", correlation_id(), error.detail)
        return jsonify({
            "error": error.title,
            "message": "An unexpected error occurred",
            "correlationId": correlation_id(),
        }), error.status

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"error": "Bad Request", "message": error.description}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method Not Allowed", "message": "Method not allowed for this resource"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 Internal Server Error."""
        # ALWAYS log the full error (even in production) - logs are secure
        logger.error("Internal error (correlation_id=%s): %s", correlation_id(), error, exc_info=True)
        return _server_error()

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        logger.error("Unhandled exception (correlation_id=%s): %s", correlation_id(), error, exc_info=True)
        return _server_error()
