"""Tests for Socket.IO session rooms and realtime delivery."""

import time

import pytest

from conftest import received, register
from services import RealtimeMessage
from web.websocket_manager import parse_session_id


@pytest.fixture
def socketio(live_app):
    return live_app.extensions["socketio"]


@pytest.fixture
def manager(live_app):
    return live_app.extensions["websocket_manager"]


@pytest.fixture
def broadcaster(live_app):
    return live_app.config["SERVICES"].broadcaster


@pytest.mark.parametrize("data, expected", [
    ({"session_id": 3}, 3),
    (3, 3),
    ("4", 4),
    ({"session_id": "x"}, None),
    (None, None),
    (0, None),
    (True, None),
])
def test_parse_session_id(data, expected):
    assert parse_session_id(data) == expected


def test_join_acknowledges_and_counts(live_app, socketio, manager):
    ws = socketio.test_client(live_app)

    ack = ws.emit("join_session", {"session_id": 5}, callback=True)

    assert ack == {"ok": True, "session_id": 5}
    events = ws.get_received()
    joined = [e["args"][0] for e in events if e["name"] == "joined"]
    counts = [e["args"][0] for e in events if e["name"] == "user_count"]
    assert joined == [{"session_id": 5, "room": "session_5"}]
    assert counts == [{"session_id": 5, "count": 1}]
    assert manager.subscriber_count(5) == 1


def test_join_rejects_bad_payload(live_app, socketio, manager):
    ws = socketio.test_client(live_app)

    ack = ws.emit("join_session", {"session_id": "abc"}, callback=True)

    assert ack["ok"] is False
    assert ack["code"] == "validation_error"
    assert manager.connected_clients == 0


def test_rejoining_same_session_is_idempotent(live_app, socketio, manager, broadcaster):
    ws = socketio.test_client(live_app)
    ws.emit("join_session", 5)
    ws.get_received()

    ws.emit("join_session", {"session_id": 5})

    events = ws.get_received()
    assert [e["name"] for e in events] == ["joined"]
    assert manager.subscriber_count(5) == 1

    broadcaster.publish(5, RealtimeMessage.spin_result({"spin_id": 1}))
    assert received(ws, "spin_result") == [{"spin_id": 1}]


def test_client_is_in_one_session_at_a_time(live_app, socketio, manager, broadcaster):
    ws = socketio.test_client(live_app)
    ws.emit("join_session", 1)
    ws.emit("join_session", 2)
    ws.get_received()

    broadcaster.publish(1, RealtimeMessage.spin_result({"spin_id": 10}))
    broadcaster.publish(2, RealtimeMessage.spin_result({"spin_id": 20}))

    assert received(ws, "spin_result", timeout=0.2) == [{"spin_id": 20}]
    assert manager.subscriber_count(1) == 0
    assert manager.subscriber_count(2) == 1


def test_user_count_follows_joins_and_disconnects(live_app, socketio):
    first = socketio.test_client(live_app)
    first.emit("join_session", 9)
    first.get_received()

    second = socketio.test_client(live_app)
    second.emit("join_session", 9)
    assert received(first, "user_count", timeout=0.5) == [{"session_id": 9, "count": 2}]

    second.disconnect()
    assert received(first, "user_count", timeout=0.5) == [{"session_id": 9, "count": 1}]

    first.emit("leave_session")
    assert first.get_received() == []


def test_leave_session_stops_delivery(live_app, socketio, broadcaster):
    ws = socketio.test_client(live_app)
    ws.emit("join_session", 4)
    ack = ws.emit("leave_session", callback=True)
    ws.get_received()

    broadcaster.publish(4, RealtimeMessage.spin_result({"spin_id": 1}))

    assert ack == {"ok": True, "session_id": 4}
    assert received(ws, "spin_result", timeout=0.1) == []


def test_participant_joined_reaches_room(live_app, socketio, live_session):
    ws = socketio.test_client(live_app)
    ws.emit("join_session", live_session["id"])
    ws.get_received()

    user = register(live_app.test_client(), live_session, 1).get_json()["user"]

    events = received(ws, "participant_joined", timeout=1.0)
    assert events == [{
        "id": user["id"],
        "name": "Guest 1",
        "external_id": "G001",
        "team": None,
        "created_at": user["created_at"],
    }]


def test_spin_result_is_revealed_after_delay(live_app, socketio, admin_client, live_session):
    """Viewers get the winner only after the reveal delay; the ledger has it at once."""
    sid = live_session["id"]
    register(live_app.test_client(), live_session, 1)
    ws = socketio.test_client(live_app)
    ws.emit("join_session", sid)
    ws.get_received()

    started = time.monotonic()
    outcome = admin_client.post(f"/api/session/{sid}/spin").get_json()

    selected = admin_client.get(f"/api/session/{sid}/selected").get_json()["selected"]
    assert [s["participant_id"] for s in selected] == [outcome["winner"]["id"]]
    assert received(ws, "spin_result") == []

    events = received(ws, "spin_result", timeout=3.0)
    assert time.monotonic() - started >= 0.15
    assert events == [{
        "winner": outcome["winner"],
        "spin_id": outcome["spin_id"],
        "remaining_users": 0,
        "timestamp": outcome["timestamp"],
    }]


def test_late_joiner_gets_no_replay(live_app, socketio, admin_client, live_session):
    """Events are not stored; a client joining after the reveal re-fetches state instead."""
    sid = live_session["id"]
    register(live_app.test_client(), live_session, 1)
    early = socketio.test_client(live_app)
    early.emit("join_session", sid)
    early.get_received()

    admin_client.post(f"/api/session/{sid}/spin")
    assert received(early, "spin_result", timeout=3.0)

    late = socketio.test_client(live_app)
    late.emit("join_session", sid)
    assert received(late, "spin_result", timeout=0.1) == []
    assert len(admin_client.get(f"/api/session/{sid}/selected").get_json()["selected"]) == 1


def test_joiner_during_reveal_delay_gets_result(live_app, socketio, admin_client, live_session):
    """A client that joins after the selection commits but before the reveal still sees it."""
    sid = live_session["id"]
    register(live_app.test_client(), live_session, 1)

    outcome = admin_client.post(f"/api/session/{sid}/spin").get_json()
    ws = socketio.test_client(live_app)
    ws.emit("join_session", sid)

    events = received(ws, "spin_result", timeout=3.0)
    assert events == [{
        "winner": outcome["winner"],
        "spin_id": outcome["spin_id"],
        "remaining_users": 0,
        "timestamp": outcome["timestamp"],
    }]
    assert received(ws, "spin_result", timeout=0.3) == []


def test_reconnect_after_missed_reveal_gets_no_replay(live_app, socketio, admin_client, live_session):
    """A client offline during the reveal gets nothing on reconnect and re-reads the ledger."""
    sid = live_session["id"]
    register(live_app.test_client(), live_session, 1)
    ws = socketio.test_client(live_app)
    ws.emit("join_session", sid)
    ws.get_received()
    ws.disconnect()

    observer = socketio.test_client(live_app)
    observer.emit("join_session", sid)
    observer.get_received()
    outcome = admin_client.post(f"/api/session/{sid}/spin").get_json()
    assert received(observer, "spin_result", timeout=3.0)

    ws.connect()
    ws.emit("join_session", sid)
    assert received(ws, "spin_result", timeout=0.3) == []

    selected = admin_client.get(f"/api/session/{sid}/selected").get_json()["selected"]
    assert [s["participant_id"] for s in selected] == [outcome["winner"]["id"]]
