"""Flask application factory for the projector page and admin editor."""

from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from config import Config, load_config
from services.draw_runtime import DrawRuntime
from web.config_middleware import (
    configure_app,
    setup_security_headers,
    setup_metrics,
)
from web.routes import register_routes


def create_app(config: Optional[Config] = None, runtime: Optional[DrawRuntime] = None, testing: bool = False) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Application configuration, loaded from the environment if omitted
        runtime: Draw runtime living on the main event loop
        testing: Whether running in testing mode

    Returns:
        Configured Flask application
    """
    config = config or load_config()
    app = Flask(__name__)

    configure_app(app, config, testing)
    setup_security_headers(app)
    setup_metrics(app)

    app.config["DRAW_RUNTIME"] = runtime

    register_routes(app)
    _setup_routes(app)
    _setup_error_handlers(app)

    return app


def _setup_routes(app: Flask) -> None:
    """Setup basic application routes.

    Args:
        app: Flask application instance
    """
    @app.route('/metrics')
    def metrics():
        """Expose Prometheus metrics."""
        data = generate_latest()
        return data, 200, {'Content-Type': CONTENT_TYPE_LATEST}


def _setup_error_handlers(app: Flask) -> None:
    """Setup JSON error handlers.

    Args:
        app: Flask application instance
    """
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"ok": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"ok": False, "error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large(error):
        return jsonify({"ok": False, "error": "Roster file is too large"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal server error: {error}")
        return jsonify({"ok": False, "error": "Internal server error"}), 500
