"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import time
from typing import List, Sequence

import pytest

from config import Config
from database import OptimizedSQLitePool, run_migrations
from database.repositories import ParticipantRepository, SessionRepository
from services import (
    Broadcaster,
    DelayedPublisher,
    RealtimeMessage,
    RegistrationService,
    SelectionLedger,
    SessionService,
    SpinEngine,
)

ADMIN = "admin"
ADMIN_PASSWORD = "secret"


def make_config(tmp_path, **overrides) -> Config:
    values = dict(
        admin_username=ADMIN,
        admin_password=ADMIN_PASSWORD,
        environment="test",
        debug=False,
        log_level="DEBUG",
        web_host="127.0.0.1",
        web_port=5000,
        secret_key="test-secret",
        database_path=str(tmp_path / "prize_wheel.sqlite"),
        log_folder=str(tmp_path / "logs"),
        db_pool_size=4,
        db_busy_timeout=5000,
        public_base_url="http://wheel.test",
        cors_origins=("*",),
        spin_reveal_delay=0.0,
        spin_retry_attempts=5,
        registration_email_domain="",
    )
    values.update(overrides)
    return Config(**values)


class RecordingBroadcaster(Broadcaster):
    """Keeps every published message; can be told to fail."""

    def __init__(self) -> None:
        self.messages: List[tuple[int, RealtimeMessage]] = []
        self.fail = False

    def publish(self, session_id: int, message: RealtimeMessage) -> None:
        if self.fail:
            raise ConnectionError("socket server unavailable")
        self.messages.append((session_id, message))

    def events(self, name: str) -> List[tuple[int, dict]]:
        return [(sid, m.payload) for sid, m in self.messages if m.event == name]


class FirstChooser:
    """Always picks the first (newest) participant of the pool."""

    def choice(self, seq: Sequence):
        return seq[0]


async def open_pool(path: str, pool_size: int = 4) -> OptimizedSQLitePool:
    pool = OptimizedSQLitePool(path, pool_size=pool_size, busy_timeout_ms=5000)
    await pool.init_pool()
    await run_migrations(pool)
    return pool


@pytest.fixture
def config(tmp_path) -> Config:
    return make_config(tmp_path)


@pytest.fixture
async def pool(config):
    """Fresh migrated database per test."""
    db_pool = await open_pool(config.database_path)
    yield db_pool
    await db_pool.close()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def session_service(pool) -> SessionService:
    return SessionService(SessionRepository(pool), "http://wheel.test")


@pytest.fixture
def participants(pool) -> ParticipantRepository:
    return ParticipantRepository(pool)


@pytest.fixture
def ledger(pool) -> SelectionLedger:
    return SelectionLedger(pool)


@pytest.fixture
def publisher(broadcaster):
    delayed = DelayedPublisher(broadcaster)
    yield delayed
    delayed.shutdown()


@pytest.fixture
def registration(participants, session_service, ledger, broadcaster) -> RegistrationService:
    return RegistrationService(
        participants=participants,
        sessions=session_service,
        ledger=ledger,
        broadcaster=broadcaster,
    )


@pytest.fixture
def engine(session_service, ledger, publisher) -> SpinEngine:
    return SpinEngine(
        sessions=session_service,
        ledger=ledger,
        publisher=publisher,
        reveal_delay=0.0,
        rng=FirstChooser(),
    )


@pytest.fixture
async def session(session_service):
    return await session_service.create_session(ADMIN)


async def add_participants(repo: ParticipantRepository, session_id: int, count: int, prefix: str = "p"):
    created = []
    for index in range(count):
        created.append(await repo.create(
            session_id=session_id,
            name=f"Participant {prefix}{index}",
            external_id=f"{prefix.upper()}{index:03d}",
            email=f"{prefix}{index}@example.com",
            team="Blue" if index % 2 else None,
        ))
    return created


async def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` on the running loop until true or timed out."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def live_app(tmp_path):
    """Flask app wired to a real database on a background service loop."""
    from services import run_coroutine_sync, start_background_loop, stop_background_loop
    from web import create_app

    app_config = make_config(tmp_path, spin_reveal_delay=0.2)
    start_background_loop("test-service-loop")
    db_pool = run_coroutine_sync(open_pool(app_config.database_path))
    app = create_app(app_config, testing=True, pool=db_pool, rng=FirstChooser())
    yield app

    async def shutdown():
        app.config["SERVICES"].publisher.shutdown()
        await db_pool.close()

    run_coroutine_sync(shutdown(), timeout=10)
    stop_background_loop()


@pytest.fixture
def admin_client(live_app):
    client = live_app.test_client()
    response = client.post("/api/auth/admin/login", json={"username": ADMIN, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def live_session(admin_client) -> dict:
    response = admin_client.post("/api/qr/generate")
    assert response.status_code == 201
    return response.get_json()["session"]


def register(client, session: dict, index: int):
    return client.post("/api/auth/register", json={
        "name": f"Guest {index}",
        "external_id": f"G{index:03d}",
        "email": f"guest{index}@example.com",
        "session_token": session["session_token"],
    })


def received(ws, event: str, timeout: float = 0.0, interval: float = 0.02) -> list:
    """Payloads of ``event`` delivered to a Socket.IO test client, polling up to ``timeout``."""
    deadline = time.monotonic() + timeout
    seen = []
    while True:
        seen.extend(p["args"][0] for p in ws.get_received() if p["name"] == event)
        if seen or time.monotonic() >= deadline:
            return seen
        time.sleep(interval)
