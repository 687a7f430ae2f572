"""Database access layer helpers."""

from __future__ import annotations

import sqlite3
from typing import List, Optional

from core.exceptions import DuplicateRegistration, StorageFailure
from database.base_repository import BaseRepository
from database.models import Participant, Session, utc_now_iso


class SessionRepository(BaseRepository):
    """Repository for registration sessions."""

    async def create(self, admin_username: str, session_token: str, public_url: str) -> Session:
        """Insert a new active session."""
        created_at = utc_now_iso()
        try:
            session_id = await self.insert(
                """
                INSERT INTO sessions (admin_username, session_token, public_url, is_active, created_at)
                VALUES (?, ?, ?, 1, ?)
                """,
                (admin_username, session_token, public_url, created_at),
            )
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not create session: {e}") from e
        return Session(
            id=session_id,
            admin_username=admin_username,
            session_token=session_token,
            public_url=public_url,
            is_active=True,
            created_at=created_at,
        )

    async def get(self, session_id: int) -> Optional[Session]:
        """Get session by id regardless of its active flag."""
        row = await self.fetch_one("SELECT * FROM sessions WHERE id=?", (session_id,))
        return Session.from_row(row) if row else None

    async def get_by_token(self, session_token: str) -> Optional[Session]:
        """Get session by its registration token."""
        row = await self.fetch_one(
            "SELECT * FROM sessions WHERE session_token=?",
            (session_token,)
        )
        return Session.from_row(row) if row else None

    async def list_active(self, admin_username: str) -> List[Session]:
        """Active sessions owned by an admin, newest first."""
        rows = await self.fetch_all(
            """
            SELECT * FROM sessions
            WHERE admin_username=? AND is_active=1
            ORDER BY created_at DESC, id DESC
            """,
            (admin_username,)
        )
        return [Session.from_row(row) for row in rows]

    async def deactivate(self, session_id: int) -> bool:
        """Soft delete a session. Returns False when nothing changed."""
        updated = await self.execute(
            "UPDATE sessions SET is_active=0 WHERE id=? AND is_active=1",
            (session_id,)
        )
        return updated > 0


class ParticipantRepository(BaseRepository):
    """Repository for participant operations."""

    async def create(
        self,
        session_id: int,
        name: str,
        external_id: str,
        email: str,
        team: Optional[str] = None,
        mobile: Optional[str] = None,
    ) -> Participant:
        """Insert an active participant.

        Raises:
            DuplicateRegistration: external id or email already active in the session
        """
        created_at = utc_now_iso()
        try:
            participant_id = await self.insert(
                """
                INSERT INTO participants
                (session_id, name, external_id, email, team, mobile, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?, 1, ?)
                """,
                (session_id, name, external_id, email, team, mobile, created_at),
            )
        except sqlite3.IntegrityError as e:
            message = str(e)
            if "external_id" in message:
                raise DuplicateRegistration(
                    "This ID is already registered for this session", field="external_id"
                ) from e
            if "email" in message:
                raise DuplicateRegistration(
                    "This email is already registered for this session", field="email"
                ) from e
            raise StorageFailure(f"Could not register participant: {e}") from e
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not register participant: {e}") from e

        return Participant(
            id=participant_id,
            session_id=session_id,
            name=name,
            external_id=external_id,
            email=email,
            team=team,
            mobile=mobile,
            is_active=True,
            created_at=created_at,
        )

    async def get(self, participant_id: int) -> Optional[Participant]:
        row = await self.fetch_one("SELECT * FROM participants WHERE id=?", (participant_id,))
        return Participant.from_row(row) if row else None

    async def find_active(
        self,
        session_id: int,
        external_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[Participant]:
        """Find an active participant of a session by external id or email."""
        if external_id is not None:
            row = await self.fetch_one(
                "SELECT * FROM participants WHERE session_id=? AND external_id=? AND is_active=1",
                (session_id, external_id)
            )
        elif email is not None:
            row = await self.fetch_one(
                "SELECT * FROM participants WHERE session_id=? AND email=? AND is_active=1",
                (session_id, email)
            )
        else:
            return None
        return Participant.from_row(row) if row else None

    async def list_active(self, session_id: int) -> List[Participant]:
        """Active participants of a session, newest first."""
        rows = await self.fetch_all(
            """
            SELECT * FROM participants
            WHERE session_id=? AND is_active=1
            ORDER BY created_at DESC, id DESC
            """,
            (session_id,)
        )
        return [Participant.from_row(row) for row in rows]

    async def deactivate(self, participant_id: int) -> bool:
        updated = await self.execute(
            "UPDATE participants SET is_active=0 WHERE id=? AND is_active=1",
            (participant_id,)
        )
        return updated > 0
