"""Realtime fan-out of session events to connected clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict

from flask_socketio import SocketIO
from prometheus_client import Counter

from core import get_logger, room_for
from core.constants import RealtimeEvent
from core.exceptions import BroadcastError

logger = get_logger(__name__)

EVENTS_PUBLISHED = Counter(
    "realtime_events_published_total",
    "Realtime events published to session rooms",
    ["event"],
)


@dataclass(frozen=True)
class RealtimeMessage:
    """One session-scoped event and its JSON payload."""
    event: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def participant_joined(cls, payload: Dict[str, Any]) -> "RealtimeMessage":
        return cls(RealtimeEvent.PARTICIPANT_JOINED.value, payload)

    @classmethod
    def spin_result(cls, payload: Dict[str, Any]) -> "RealtimeMessage":
        return cls(RealtimeEvent.SPIN_RESULT.value, payload)


class Broadcaster(ABC):
    """Publish/subscribe channel per registration session."""

    @abstractmethod
    def publish(self, session_id: int, message: RealtimeMessage) -> None:
        """Deliver ``message`` to every client currently subscribed to the session."""


class SocketIOBroadcaster(Broadcaster):
    """Broadcaster backed by Flask-SocketIO rooms named ``session_<id>``.

    Delivery is at-most-once to whoever is in the room at emit time;
    nothing is stored for clients that join later.
    """

    def __init__(self, socketio: SocketIO, namespace: str = "/") -> None:
        self.socketio = socketio
        self.namespace = namespace

    def publish(self, session_id: int, message: RealtimeMessage) -> None:
        room = room_for(session_id)
        try:
            self.socketio.emit(message.event, message.payload, to=room, namespace=self.namespace)
        except Exception as e:
            raise BroadcastError(f"Could not publish {message.event} to {room}: {e}") from e
        EVENTS_PUBLISHED.labels(event=message.event).inc()
        logger.debug(f"Published {message.event} to {room}")
