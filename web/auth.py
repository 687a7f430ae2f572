"""Authentication utilities for the prize wheel API.

Two kinds of callers exist: the admin, authenticated with the configured
username/password through Flask-Login, and participants, identified by the
participant id stored in the Flask session when they register.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional, TypeVar

from flask import session as flask_session
from flask_login import LoginManager, UserMixin, current_user
from werkzeug.security import check_password_hash, generate_password_hash

from core.exceptions import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)

PARTICIPANT_ID_KEY = "participant_id"
PARTICIPANT_SESSION_KEY = "participant_session_id"


@dataclass
class AdminCredentials:
    """Credentials of the single event admin."""
    username: str
    password_hash: str


class AdminUser(UserMixin):
    """Represents an authenticated admin user."""
    def __init__(self, username: str) -> None:
        self.id = username
        self.username = username


@dataclass(frozen=True)
class ParticipantIdentity:
    participant_id: int
    session_id: int


def init_login_manager(app, credentials: AdminCredentials) -> AdminCredentials:
    """Initialize Flask-Login for the app and hash a plain-text admin password.

    Args:
        app: Flask application instance
        credentials: Admin credentials containing username and password (hash)

    Returns:
        Updated credentials with properly hashed password
    """
    logger.info(
        "Initializing login manager with credentials: username='%s', password_hash='<hidden>'",
        credentials.username,
    )

    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> Optional[AdminUser]:
        if user_id == credentials.username:
            return AdminUser(username=user_id)
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        raise AuthenticationError("Admin login required")

    if not credentials.password_hash.startswith(("pbkdf2:", "scrypt:")):
        credentials.password_hash = generate_password_hash(credentials.password_hash)
        logger.info("Password hashed for admin user '%s'", credentials.username)

    app.config["ADMIN_CREDENTIALS"] = credentials
    return credentials


def validate_credentials(credentials: AdminCredentials, username: str, password: str) -> bool:
    """Check a username/password pair against the configured admin."""
    if username.lower() != credentials.username.lower():
        logger.info("Admin login rejected: unknown username '%s'", username)
        return False

    result = check_password_hash(credentials.password_hash, password)
    if not result:
        logger.info("Admin login rejected: wrong password for '%s'", username)
    return result


def admin_required(view: F) -> F:
    """Reject the request with 401 unless an admin is logged in."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            raise AuthenticationError("Admin login required")
        return view(*args, **kwargs)
    return wrapper  # type: ignore[return-value]


def current_admin_username() -> Optional[str]:
    if current_user.is_authenticated:
        return current_user.username
    return None


def remember_participant(participant_id: int, session_id: int) -> None:
    flask_session[PARTICIPANT_ID_KEY] = participant_id
    flask_session[PARTICIPANT_SESSION_KEY] = session_id


def current_participant() -> Optional[ParticipantIdentity]:
    participant_id = flask_session.get(PARTICIPANT_ID_KEY)
    session_id = flask_session.get(PARTICIPANT_SESSION_KEY)
    if participant_id is None or session_id is None:
        return None
    return ParticipantIdentity(participant_id=participant_id, session_id=session_id)


def require_participant() -> ParticipantIdentity:
    identity = current_participant()
    if identity is None:
        raise AuthenticationError("Registration required")
    return identity


def authorize_session_viewer(session_id: int) -> Optional[str]:
    """Allow the admin or a participant registered in ``session_id``.

    Returns the admin username when the caller is the admin, None for a
    participant.

    Raises:
        AuthenticationError: anonymous caller
        AuthorizationError: participant of another session
    """
    admin = current_admin_username()
    if admin is not None:
        return admin
    identity = require_participant()
    if identity.session_id != session_id:
        raise AuthorizationError("Not registered for this session")
    return None
