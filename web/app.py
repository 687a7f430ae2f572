"""Flask application factory for the prize wheel API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from flask import Flask, jsonify, request
from flask_socketio import SocketIO
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from werkzeug.exceptions import HTTPException

from core import get_logger
from core.exceptions import ApplicationError
from services import SocketIOBroadcaster, build_services
from web.auth import AdminCredentials, init_login_manager
from web.config_middleware import (
    configure_app,
    setup_security_headers,
    setup_metrics,
    REQUEST_ERRORS,
)
from web.routes import register_routes
from web.websocket_manager import WebSocketManager

if TYPE_CHECKING:
    from config import Config
    from database.connection import OptimizedSQLitePool
    from services.spin_engine import Chooser

logger = get_logger(__name__)


def create_app(
    config: Config,
    testing: bool = False,
    pool: Optional[OptimizedSQLitePool] = None,
    rng: Optional[Chooser] = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Application configuration
        testing: Whether running in testing mode
        pool: Database pool for the services (defaults to the process-wide pool)
        rng: Winner chooser for the spin engine (defaults to SystemRandom)

    Returns:
        Configured Flask application; its Socket.IO server is
        ``app.extensions["socketio"]``.
    """
    app = Flask(__name__)

    # Configure application
    configure_app(app, config, testing)

    # Setup middleware
    setup_security_headers(app)
    setup_metrics(app)

    # Initialize authentication
    credentials = AdminCredentials(
        username=config.admin_username,
        password_hash=config.admin_password
    )
    init_login_manager(app, credentials)

    # Realtime layer
    cors = "*" if "*" in config.cors_origins else list(config.cors_origins)
    socketio = SocketIO(app, cors_allowed_origins=cors, async_mode="threading")
    app.extensions["websocket_manager"] = WebSocketManager(socketio)

    app.config["SERVICES"] = build_services(
        config,
        broadcaster=SocketIOBroadcaster(socketio),
        pool=pool,
        rng=rng,
    )

    # Register routes
    register_routes(app)

    _setup_routes(app)
    _setup_error_handlers(app)

    return app


def _setup_routes(app: Flask) -> None:
    @app.route('/metrics')
    def metrics():
        """Expose Prometheus metrics."""
        data = generate_latest()
        return data, 200, {'Content-Type': CONTENT_TYPE_LATEST}


def _setup_error_handlers(app: Flask) -> None:
    """Map every failure to a JSON ``{"error", "code"}`` body.

    Args:
        app: Flask application instance
    """
    @app.errorhandler(ApplicationError)
    def application_error(error: ApplicationError):
        if error.http_status >= 500:
            logger.error(f"{request.method} {request.path} failed: {error}")
        else:
            logger.info(f"{request.method} {request.path} rejected: {error.code} ({error.message})")
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        code = (error.name or "http_error").lower().replace(" ", "_")
        return jsonify({"error": error.description, "code": code}), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        """Handle unexpected errors."""
        path = getattr(request.url_rule, 'rule', None) or 'unmatched'
        REQUEST_ERRORS.labels(method=request.method, path=path).inc()
        logger.exception(f"Internal server error: {error}")
        return jsonify({"error": "Internal server error", "code": "internal_error"}), 500
