"""Core application components."""

# Import in correct order to avoid circular dependencies
from core.logger import setup_logger, get_logger
from core.constants import (
    DatabaseDefaults,
    SpinDefaults,
    SessionDefaults,
    RegistrationDefaults,
    RealtimeEvent,
    room_for,
)
from core.exceptions import (
    ApplicationError,
    ConfigurationError,
    DatabaseError,
    StorageFailure,
    ServiceError,
    BroadcastError,
    SpinError,
    NoEligibleParticipants,
    DuplicateSelection,
    ParticipantUnavailable,
    SessionError,
    SessionNotFound,
    SessionInactive,
    ParticipantNotFound,
    ValidationError,
    DuplicateRegistration,
    AuthenticationError,
    AuthorizationError,
)

__all__ = [
    # Initializer
    'ApplicationInitializer',
    # Logging
    'setup_logger',
    'get_logger',
    # Constants
    'DatabaseDefaults',
    'SpinDefaults',
    'SessionDefaults',
    'RegistrationDefaults',
    'RealtimeEvent',
    'room_for',
    # Exceptions
    'ApplicationError',
    'ConfigurationError',
    'DatabaseError',
    'StorageFailure',
    'ServiceError',
    'BroadcastError',
    'SpinError',
    'NoEligibleParticipants',
    'DuplicateSelection',
    'ParticipantUnavailable',
    'SessionError',
    'SessionNotFound',
    'SessionInactive',
    'ParticipantNotFound',
    'ValidationError',
    'DuplicateRegistration',
    'AuthenticationError',
    'AuthorizationError',
]

# Import ApplicationInitializer last to avoid circular imports
from core.app_initializer import ApplicationInitializer
