"""Admin session management, spins and session state endpoints."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from services import ServiceRegistry, run_coroutine_sync
from web.auth import admin_required, authorize_session_viewer, current_admin_username

sessions_bp = Blueprint("sessions", __name__, url_prefix="/api")


def _services() -> ServiceRegistry:
    return current_app.config["SERVICES"]


async def _eligible_users(services: ServiceRegistry, session_id: int, admin: str | None):
    await services.sessions.get_session(session_id, admin)
    return await services.ledger.eligible_pool(session_id)


async def _counts(services: ServiceRegistry, session_id: int, admin: str | None):
    await services.sessions.get_session(session_id, admin)
    return await services.ledger.counts(session_id)


async def _selected(services: ServiceRegistry, session_id: int, admin: str | None):
    await services.sessions.get_session(session_id, admin)
    return await services.ledger.list(session_id)


@sessions_bp.route("/qr/generate", methods=["POST"])
@admin_required
def generate_session():
    session = run_coroutine_sync(_services().sessions.create_session(current_admin_username()))
    return jsonify({"message": "Session created", "session": session.to_dict()}), 201


@sessions_bp.route("/qr/sessions", methods=["GET"])
@admin_required
def list_sessions():
    sessions = run_coroutine_sync(
        _services().sessions.list_active_sessions(current_admin_username())
    )
    return jsonify({"sessions": [s.to_dict() for s in sessions]})


@sessions_bp.route("/qr/sessions/<int:session_id>", methods=["DELETE"])
@admin_required
def deactivate_session(session_id: int):
    session = run_coroutine_sync(
        _services().sessions.deactivate_session(session_id, current_admin_username())
    )
    return jsonify({"message": "Session deactivated", "session": session.to_dict()})


@sessions_bp.route("/session/<int:session_id>/users", methods=["GET"])
def eligible_users(session_id: int):
    """Participants still in the draw, newest first."""
    admin = authorize_session_viewer(session_id)
    users = run_coroutine_sync(_eligible_users(_services(), session_id, admin))
    return jsonify({
        "session_id": session_id,
        "users": [dict(p.public_fields(), created_at=p.created_at) for p in users],
        "count": len(users),
    })


@sessions_bp.route("/session/<int:session_id>/users/<int:participant_id>", methods=["DELETE"])
@admin_required
def remove_participant(session_id: int, participant_id: int):
    run_coroutine_sync(
        _services().registration.remove_participant(
            session_id, participant_id, current_admin_username()
        )
    )
    return jsonify({"message": "Participant removed", "participant_id": participant_id})


@sessions_bp.route("/session/<int:session_id>/count", methods=["GET"])
def participant_counts(session_id: int):
    admin = authorize_session_viewer(session_id)
    counts = run_coroutine_sync(_counts(_services(), session_id, admin))
    return jsonify(dict(counts, session_id=session_id))


@sessions_bp.route("/session/<int:session_id>/spin", methods=["POST"])
@admin_required
def spin(session_id: int):
    services = _services()
    outcome = run_coroutine_sync(
        services.spin_engine.spin_with_retry(
            session_id,
            current_admin_username(),
            max_attempts=services.spin_retry_attempts,
        )
    )
    return jsonify(outcome.to_response())


@sessions_bp.route("/session/<int:session_id>/selected", methods=["GET"])
def selected_users(session_id: int):
    """Winners in the order they were drawn."""
    admin = authorize_session_viewer(session_id)
    selected = run_coroutine_sync(_selected(_services(), session_id, admin))
    return jsonify({
        "session_id": session_id,
        "selected": [s.to_dict() for s in selected],
        "count": len(selected),
    })
