"""Health check blueprint."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from utils.performance import PerformanceMonitor


health_bp = Blueprint("health", __name__, url_prefix="/api")
monitor = PerformanceMonitor()


@health_bp.route("/health")
def health_check():
    services = current_app.config["SERVICES"]
    with monitor.track_check():
        pool_size = services.ledger.pool.size
        monitor.record_db_pool(pool_size)
        monitor.record_pending_broadcasts(services.publisher.pending)
        ws_manager = current_app.extensions.get("websocket_manager")

        data = {
            "status": "ok",
            "db_pool_size": pool_size,
            "pending_broadcasts": services.publisher.pending,
            "subscribed_clients": ws_manager.connected_clients if ws_manager else 0,
            "host": monitor.gather_host_metrics(),
        }
    return jsonify(data)
