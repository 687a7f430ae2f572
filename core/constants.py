"""Application-wide constants and configuration values."""

from __future__ import annotations

from enum import Enum


# Database constants
class DatabaseDefaults:
    """Default database configuration."""
    POOL_SIZE = 10
    BUSY_TIMEOUT = 5000  # milliseconds


# Spin constants
class SpinDefaults:
    """Spin engine configuration."""
    REVEAL_DELAY = 6.0  # seconds between record and spin_result broadcast
    RETRY_ATTEMPTS = 5


# Registration session constants
class SessionDefaults:
    """Registration session configuration."""
    TOKEN_BYTES = 32
    ROOM_PREFIX = "session_"


# Registration field limits
class RegistrationDefaults:
    """Registration form limits."""
    NAME_MIN_LENGTH = 2
    NAME_MAX_LENGTH = 255
    EXTERNAL_ID_MIN_LENGTH = 3
    EXTERNAL_ID_MAX_LENGTH = 100
    TEAM_MAX_LENGTH = 100


class RealtimeEvent(str, Enum):
    """Server-to-client socket events."""
    PARTICIPANT_JOINED = "participant_joined"
    SPIN_RESULT = "spin_result"
    USER_COUNT = "user_count"
    JOINED = "joined"


def room_for(session_id: int) -> str:
    """Socket.IO room name for a registration session."""
    return f"{SessionDefaults.ROOM_PREFIX}{session_id}"
