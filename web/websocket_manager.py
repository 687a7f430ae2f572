"""Socket.IO subscriptions of clients to registration session rooms."""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room
from prometheus_client import Gauge

from core import get_logger, room_for
from core.constants import RealtimeEvent

logger = get_logger(__name__)

SUBSCRIBED_CLIENTS = Gauge(
    "realtime_subscribed_clients",
    "Socket.IO clients subscribed to a session room",
)


def parse_session_id(data: Any) -> Optional[int]:
    """Accept ``{"session_id": n}`` or a bare id; None when unusable."""
    if isinstance(data, dict):
        data = data.get("session_id")
    if isinstance(data, bool):
        return None
    try:
        session_id = int(data)
    except (TypeError, ValueError):
        return None
    return session_id if session_id > 0 else None


class WebSocketManager:
    """
    Tracks which session room each Socket.IO client listens to.

    A client is in at most one session room at a time: joining another
    session leaves the previous room first, joining the same session again
    only re-sends the ``joined`` acknowledgement. Rooms are not checked
    against the database; an unknown session simply never receives events.
    """

    def __init__(self, socketio: SocketIO, namespace: str = "/"):
        self.socketio = socketio
        self.namespace = namespace

        # {sid: session_id}
        self._subscriptions: Dict[str, int] = {}
        self._lock = threading.Lock()

        self._register_handlers()

    def _register_handlers(self) -> None:

        @self.socketio.on('connect', namespace=self.namespace)
        def handle_connect(auth=None):
            logger.debug(f"Client {request.sid} connected")
            return True

        @self.socketio.on('disconnect', namespace=self.namespace)
        def handle_disconnect(reason=None):
            previous = self._unsubscribe(request.sid)
            if previous is not None:
                self.broadcast_user_count(previous)
            logger.debug(f"Client {request.sid} disconnected ({reason})")

        @self.socketio.on('join_session', namespace=self.namespace)
        def handle_join_session(data=None):
            session_id = parse_session_id(data)
            if session_id is None:
                return {"ok": False, "error": "Invalid session id", "code": "validation_error"}
            self.join(request.sid, session_id)
            return {"ok": True, "session_id": session_id}

        @self.socketio.on('leave_session', namespace=self.namespace)
        def handle_leave_session(data=None):
            previous = self._unsubscribe(request.sid)
            if previous is None:
                return {"ok": True, "session_id": None}
            leave_room(room_for(previous))
            self.broadcast_user_count(previous)
            logger.info(f"Client {request.sid} left session {previous}")
            return {"ok": True, "session_id": previous}

    def join(self, sid: str, session_id: int) -> None:
        """Subscribe the current client to ``session_id``. Must run inside a handler."""
        with self._lock:
            previous = self._subscriptions.get(sid)
            self._subscriptions[sid] = session_id
            SUBSCRIBED_CLIENTS.set(len(self._subscriptions))

        if previous != session_id:
            if previous is not None:
                leave_room(room_for(previous))
            join_room(room_for(session_id))
            logger.info(f"Client {sid} joined session {session_id}")

        emit(RealtimeEvent.JOINED.value, {"session_id": session_id, "room": room_for(session_id)})

        if previous != session_id:
            if previous is not None:
                self.broadcast_user_count(previous)
            self.broadcast_user_count(session_id)

    def _unsubscribe(self, sid: str) -> Optional[int]:
        with self._lock:
            previous = self._subscriptions.pop(sid, None)
            SUBSCRIBED_CLIENTS.set(len(self._subscriptions))
        return previous

    def session_of(self, sid: str) -> Optional[int]:
        with self._lock:
            return self._subscriptions.get(sid)

    def subscriber_count(self, session_id: int) -> int:
        with self._lock:
            return sum(1 for s in self._subscriptions.values() if s == session_id)

    @property
    def connected_clients(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def broadcast_user_count(self, session_id: int) -> None:
        self.socketio.emit(
            RealtimeEvent.USER_COUNT.value,
            {"session_id": session_id, "count": self.subscriber_count(session_id)},
            to=room_for(session_id),
            namespace=self.namespace,
        )
