"""Application-wide exception classes."""

from __future__ import annotations

from typing import Optional


class ApplicationError(Exception):
    """Base exception for all application errors.

    Subclasses set ``code`` and ``http_status`` so the web layer can map
    any of them to a JSON rejection without knowing the concrete type.
    """
    code = "application_error"
    http_status = 500

    def __init__(self, message: str = "", field: Optional[str] = None) -> None:
        self.message = message or (self.__class__.__doc__ or self.code).strip()
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> dict:
        data = {"error": self.message, "code": self.code}
        if self.field:
            data["field"] = self.field
        return data


class ConfigurationError(ApplicationError):
    """Raised when configuration is invalid."""
    code = "configuration_error"


class DatabaseError(ApplicationError):
    """Base exception for database-related errors."""
    code = "database_error"


class StorageFailure(DatabaseError):
    """Storage operation failed; nothing was recorded."""
    code = "storage_failure"


class ServiceError(ApplicationError):
    """Base exception for service-level errors."""
    code = "service_error"


class BroadcastError(ServiceError):
    """Raised when a realtime event cannot be delivered."""
    code = "broadcast_error"


class SpinError(ServiceError):
    """Base exception for spin operations."""
    code = "spin_error"
    http_status = 400


class NoEligibleParticipants(SpinError):
    """No users available to spin. All users have been selected!"""
    code = "no_eligible_participants"
    http_status = 400


class DuplicateSelection(SpinError):
    """Participant was already selected in this session; retry the spin."""
    code = "duplicate_selection"
    http_status = 409


class ParticipantUnavailable(DuplicateSelection):
    """Drawn participant left the session before the selection was recorded; retry the spin."""
    code = "participant_unavailable"
    http_status = 409


class SessionError(ApplicationError):
    """Base exception for registration session errors."""
    code = "session_error"
    http_status = 400


class SessionNotFound(SessionError):
    """Session not found"""
    code = "session_not_found"
    http_status = 404


class SessionInactive(SessionError):
    """Session is no longer active"""
    code = "session_inactive"
    http_status = 410


class ParticipantNotFound(SessionError):
    """Participant not found in this session"""
    code = "participant_not_found"
    http_status = 404


class ValidationError(ApplicationError):
    """Raised when data validation fails."""
    code = "validation_error"
    http_status = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        details: Optional[list] = None,
    ) -> None:
        super().__init__(message, field=field)
        self.details = details or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.details:
            data["details"] = self.details
        return data


class DuplicateRegistration(ValidationError):
    """Participant is already registered for this session."""
    code = "duplicate_registration"
    http_status = 409


class AuthenticationError(ApplicationError):
    """Raised when authentication fails."""
    code = "authentication_error"
    http_status = 401


class AuthorizationError(ApplicationError):
    """Raised when authorization fails."""
    code = "authorization_error"
    http_status = 403
