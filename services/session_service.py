"""Registration session lifecycle: create, list, deactivate."""

from __future__ import annotations

import secrets
from typing import List, Optional

from core import get_logger, SessionDefaults
from core.exceptions import SessionInactive, SessionNotFound
from database.models import Session
from database.repositories import SessionRepository

logger = get_logger(__name__)


class SessionService:
    """Owns registration sessions and their activity/ownership checks."""

    def __init__(self, sessions: SessionRepository, public_base_url: str) -> None:
        self.sessions = sessions
        self.public_base_url = public_base_url.rstrip("/")

    def _public_url(self, token: str) -> str:
        return f"{self.public_base_url}/register/{token}"

    async def create_session(self, admin_username: str) -> Session:
        token = secrets.token_hex(SessionDefaults.TOKEN_BYTES)
        session = await self.sessions.create(
            admin_username=admin_username,
            session_token=token,
            public_url=self._public_url(token),
        )
        logger.info(f"Session {session.id} created by {admin_username}")
        return session

    async def list_active_sessions(self, admin_username: str) -> List[Session]:
        return await self.sessions.list_active(admin_username)

    async def deactivate_session(self, session_id: int, admin_username: str) -> Session:
        """Soft delete a session owned by the admin.

        Raises:
            SessionNotFound: session missing or owned by another admin
        """
        session = await self.get_session(session_id, admin_username)
        if await self.sessions.deactivate(session_id):
            logger.info(f"Session {session_id} deactivated by {admin_username}")
        session.is_active = False
        return session

    async def require_active_session(
        self,
        session_id: int,
        admin_username: Optional[str] = None,
    ) -> Session:
        """Return the session if it exists, is active and (optionally) is owned.

        Raises:
            SessionNotFound: missing, or not owned by ``admin_username``
            SessionInactive: session was deactivated
        """
        session = await self.get_session(session_id, admin_username)
        if not session.is_active:
            raise SessionInactive()
        return session

    async def resolve_token(self, session_token: str) -> Session:
        """Active session for a registration token.

        Raises:
            SessionNotFound: unknown token
            SessionInactive: session was deactivated
        """
        session = await self.sessions.get_by_token(session_token)
        if session is None:
            raise SessionNotFound("Invalid or expired session")
        if not session.is_active:
            raise SessionInactive("Invalid or expired session")
        return session

    async def get_session(self, session_id: int, admin_username: Optional[str] = None) -> Session:
        session = await self.sessions.get(session_id)
        if session is None:
            raise SessionNotFound()
        if admin_username is not None and session.admin_username != admin_username:
            # Other admins' sessions are indistinguishable from missing ones
            raise SessionNotFound()
        return session
