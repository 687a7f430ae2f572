"""Tests for participant registration and session management."""

import pytest

from conftest import add_participants
from core.exceptions import (
    DuplicateRegistration,
    ParticipantNotFound,
    SessionInactive,
    SessionNotFound,
    ValidationError,
)
from services import RegistrationService


def _form(session, **overrides):
    form = {
        "name": "Ada Lovelace",
        "external_id": "KOC-001",
        "email": "Ada@Example.com",
        "session_token": session.session_token,
        "team": "Engines",
        "mobile": "+44 20 7946 0018",
    }
    form.update(overrides)
    return form


@pytest.mark.asyncio
async def test_create_session(session_service):
    session = await session_service.create_session("admin")

    assert len(session.session_token) == 64
    assert session.public_url == f"http://wheel.test/register/{session.session_token}"
    assert session.is_active


@pytest.mark.asyncio
async def test_list_active_sessions_newest_first(session_service):
    first = await session_service.create_session("admin")
    second = await session_service.create_session("admin")
    await session_service.create_session("other")
    await session_service.deactivate_session(first.id, "admin")
    third = await session_service.create_session("admin")

    sessions = await session_service.list_active_sessions("admin")

    assert [s.id for s in sessions] == [third.id, second.id]


@pytest.mark.asyncio
async def test_deactivate_foreign_session(session_service, session):
    with pytest.raises(SessionNotFound):
        await session_service.deactivate_session(session.id, "intruder")


@pytest.mark.asyncio
async def test_register_participant(registration, broadcaster, session):
    participant = await registration.register(_form(session))

    assert participant.session_id == session.id
    assert participant.email == "ada@example.com"
    assert participant.mobile == "+442079460018"

    joined = broadcaster.events("participant_joined")
    assert joined == [(session.id, {
        "id": participant.id,
        "name": "Ada Lovelace",
        "external_id": "KOC-001",
        "team": "Engines",
        "created_at": participant.created_at,
    })]


@pytest.mark.asyncio
async def test_duplicate_email_rejected(registration, session):
    await registration.register(_form(session))

    with pytest.raises(DuplicateRegistration) as exc_info:
        await registration.register(_form(session, external_id="KOC-002", email="ada@example.com"))
    assert exc_info.value.field == "email"
    assert exc_info.value.http_status == 409


@pytest.mark.asyncio
async def test_duplicate_external_id_rejected(registration, session):
    await registration.register(_form(session))

    with pytest.raises(DuplicateRegistration) as exc_info:
        await registration.register(_form(session, email="other@example.com"))
    assert exc_info.value.field == "external_id"


@pytest.mark.asyncio
async def test_same_person_may_join_another_session(registration, session_service, session):
    other = await session_service.create_session("admin")
    await registration.register(_form(session))

    participant = await registration.register(_form(other))

    assert participant.session_id == other.id


@pytest.mark.asyncio
async def test_storage_rejects_duplicate_without_precheck(participants, session):
    """The unique indexes catch duplicates that slip past the lookup."""
    await participants.create(session.id, "Ada", "KOC-001", "ada@example.com")

    with pytest.raises(DuplicateRegistration) as exc_info:
        await participants.create(session.id, "Ada Again", "KOC-001", "new@example.com")
    assert exc_info.value.field == "external_id"


@pytest.mark.asyncio
async def test_unknown_token(registration, session):
    with pytest.raises(SessionNotFound):
        await registration.register(_form(session, session_token="f" * 64))


@pytest.mark.asyncio
async def test_inactive_session_token(registration, session_service, session):
    await session_service.deactivate_session(session.id, "admin")

    with pytest.raises(SessionInactive) as exc_info:
        await registration.register(_form(session))
    assert exc_info.value.message == "Invalid or expired session"


@pytest.mark.asyncio
async def test_invalid_form(registration, session):
    with pytest.raises(ValidationError) as exc_info:
        await registration.register(_form(session, name="A", email="not-an-email"))

    fields = {d["field"] for d in exc_info.value.details}
    assert fields == {"name", "email"}


@pytest.mark.asyncio
async def test_email_domain_restriction(participants, session_service, ledger, session):
    registration = RegistrationService(participants, session_service, ledger, email_domain="corp.test")

    with pytest.raises(ValidationError):
        await registration.register(_form(session))

    participant = await registration.register(_form(session, email="ada@corp.test"))
    assert participant.email == "ada@corp.test"


@pytest.mark.asyncio
async def test_broadcast_failure_does_not_fail_registration(registration, broadcaster, participants, session):
    broadcaster.fail = True

    participant = await registration.register(_form(session))

    assert await participants.get(participant.id) is not None


@pytest.mark.asyncio
async def test_session_view(registration, ledger, participants, session):
    people = await add_participants(participants, session.id, 3)
    await ledger.record_spin(session.id, people[0], pool_size=3)

    view = await registration.session_view(session.id)

    assert view["session_id"] == session.id
    assert [u["id"] for u in view["users"]] == [p.id for p in reversed(people)]
    assert [s["participant_id"] for s in view["selected"]] == [people[0].id]
    assert "email" not in view["users"][0]


@pytest.mark.asyncio
async def test_remove_participant(registration, ledger, participants, session):
    people = await add_participants(participants, session.id, 2)

    removed = await registration.remove_participant(session.id, people[0].id, "admin")

    assert removed.is_active is False
    assert [p.id for p in await ledger.eligible_pool(session.id)] == [people[1].id]
    with pytest.raises(ParticipantNotFound):
        await registration.remove_participant(session.id, people[0].id, "admin")
    with pytest.raises(SessionNotFound):
        await registration.remove_participant(session.id, people[1].id, "intruder")


@pytest.mark.asyncio
async def test_removed_participant_may_register_again(registration, participants, session):
    participant = await registration.register(_form(session))
    await registration.remove_participant(session.id, participant.id, "admin")

    again = await registration.register(_form(session))

    assert again.id != participant.id
