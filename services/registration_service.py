"""Participant self-registration and the participant's view of a session."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from core import get_logger
from core.exceptions import DuplicateRegistration, ParticipantNotFound
from database.models import Participant
from database.repositories import ParticipantRepository
from services.broadcaster import Broadcaster, RealtimeMessage
from services.selection_ledger import SelectionLedger
from services.session_service import SessionService
from utils.validators import validate_registration

logger = get_logger(__name__)


class RegistrationService:
    """Registers participants and announces them to the session room.

    Duplicate policy: a second registration with an external id or email
    already active in the session is rejected with ``DuplicateRegistration``.
    The partial unique indexes on ``participants`` back the pre-check when
    two submissions race.
    """

    def __init__(
        self,
        participants: ParticipantRepository,
        sessions: SessionService,
        ledger: SelectionLedger,
        broadcaster: Optional[Broadcaster] = None,
        email_domain: str = "",
    ) -> None:
        self.participants = participants
        self.sessions = sessions
        self.ledger = ledger
        self.broadcaster = broadcaster
        self.email_domain = email_domain

    async def register(self, payload: Mapping[str, Any]) -> Participant:
        """Validate the form, store the participant and publish ``participant_joined``.

        Raises:
            ValidationError: malformed form
            SessionNotFound / SessionInactive: bad registration token
            DuplicateRegistration: already registered in this session
        """
        fields = validate_registration(payload, self.email_domain)
        session = await self.sessions.resolve_token(fields["session_token"])

        if await self.participants.find_active(session.id, email=fields["email"]):
            raise DuplicateRegistration(
                "This email is already registered for this session", field="email"
            )
        if await self.participants.find_active(session.id, external_id=fields["external_id"]):
            raise DuplicateRegistration(
                "This ID is already registered for this session", field="external_id"
            )

        participant = await self.participants.create(
            session_id=session.id,
            name=fields["name"],
            external_id=fields["external_id"],
            email=fields["email"],
            team=fields["team"],
            mobile=fields["mobile"],
        )
        logger.info(f"Participant {participant.id} registered in session {session.id}")

        self._announce(participant)
        return participant

    def _announce(self, participant: Participant) -> None:
        if self.broadcaster is None:
            return
        payload = dict(participant.public_fields(), created_at=participant.created_at)
        try:
            self.broadcaster.publish(
                participant.session_id, RealtimeMessage.participant_joined(payload)
            )
        except Exception as e:
            # Already stored; viewers re-fetch on reconnect
            logger.warning(f"participant_joined not delivered for session {participant.session_id}: {e}")

    async def session_view(self, session_id: int) -> Dict[str, Any]:
        """Participants (newest first) and winners (ledger order) of a session."""
        await self.sessions.get_session(session_id)
        participants = await self.participants.list_active(session_id)
        selected = await self.ledger.list(session_id)
        return {
            "session_id": session_id,
            "users": [
                dict(p.public_fields(), created_at=p.created_at) for p in participants
            ],
            "selected": [s.to_dict() for s in selected],
        }

    async def remove_participant(
        self,
        session_id: int,
        participant_id: int,
        admin_username: str,
    ) -> Participant:
        """Deactivate a participant so later spins skip them.

        A participant who was already selected keeps their ledger entry.

        Raises:
            SessionNotFound: session missing or owned by another admin
            ParticipantNotFound: no active participant with that id in the session
        """
        await self.sessions.get_session(session_id, admin_username)
        participant = await self.participants.get(participant_id)
        if participant is None or participant.session_id != session_id or not participant.is_active:
            raise ParticipantNotFound()
        await self.participants.deactivate(participant_id)
        participant.is_active = False
        logger.info(f"Participant {participant_id} removed from session {session_id} by {admin_username}")
        return participant
