"""Admin login and participant registration endpoints."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, login_user, logout_user

from core import get_logger
from core.exceptions import AuthenticationError, ValidationError
from services import run_coroutine_sync
from web.auth import (
    AdminCredentials,
    AdminUser,
    current_admin_username,
    remember_participant,
    require_participant,
    validate_credentials,
)

logger = get_logger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


@auth_bp.route("/auth/admin/login", methods=["POST"])
def admin_login():
    """Log the admin in.

    The Flask-Login session cookie is what later admin endpoints check.
    """
    payload = _json_body()
    username = str(payload.get("username") or "").strip()
    password = str(payload.get("password") or "")
    if not username or not password:
        raise ValidationError("Username and password are required")

    credentials: AdminCredentials = current_app.config["ADMIN_CREDENTIALS"]
    if not validate_credentials(credentials, username, password):
        raise AuthenticationError("Invalid credentials")

    login_user(AdminUser(username=credentials.username))
    logger.info(f"Admin {credentials.username} logged in")
    return jsonify({"message": "Login successful", "user": {"username": credentials.username}})


@auth_bp.route("/auth/admin/logout", methods=["POST"])
@login_required
def admin_logout():
    username = current_admin_username()
    logout_user()
    logger.info(f"Admin {username} logged out")
    return jsonify({"message": "Logged out"})


@auth_bp.route("/auth/register", methods=["POST"])
def register():
    services = current_app.config["SERVICES"]
    participant = run_coroutine_sync(services.registration.register(_json_body()))
    remember_participant(participant.id, participant.session_id)
    return jsonify({
        "message": "Registration successful",
        "user": participant.to_dict(),
        "session_id": participant.session_id,
    }), 201


@auth_bp.route("/user/session", methods=["GET"])
def participant_session():
    identity = require_participant()
    services = current_app.config["SERVICES"]
    view = run_coroutine_sync(services.registration.session_view(identity.session_id))
    view["participant_id"] = identity.participant_id
    return jsonify(view)
