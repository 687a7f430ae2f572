"""Append-only, ordered ledger of spin selections.

The ledger is the only place where selection rows are written. The
at-most-once rule is enforced by the ``UNIQUE(session_id, participant_id)``
index on ``selections``: a violation is reported as ``DuplicateSelection``
and the surrounding transaction is rolled back, so a Spin never exists
without its Selection.

Ordering is ``created_at`` ascending with ``id`` as tie-breaker.
``created_at`` is taken after ``BEGIN IMMEDIATE`` has acquired the write
lock, which makes it monotonic with commit order.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiosqlite

from core import get_logger
from core.exceptions import (
    DuplicateSelection,
    ParticipantUnavailable,
    SessionInactive,
    SessionNotFound,
    StorageFailure,
)
from database.base_repository import BaseRepository
from database.models import (
    Participant,
    SelectedParticipant,
    Selection,
    Spin,
    utc_now_iso,
)

logger = get_logger(__name__)


@dataclass(slots=True)
class RecordedSpin:
    """Spin and Selection written together by ``record_spin``."""
    spin: Spin
    selection: Selection


class SelectionLedger(BaseRepository):
    """Durable, ordered, immutable history of selections per session."""

    async def record(
        self,
        spin_id: int,
        participant_id: int,
        conn: Optional[aiosqlite.Connection] = None,
    ) -> Selection:
        """Append a Selection for an existing Spin.

        With ``conn`` the insert joins the caller's open write transaction;
        otherwise it runs in its own.

        Raises:
            DuplicateSelection: participant already selected in the spin's
                session, or the spin already has its selection
            ParticipantUnavailable: participant is not an active member of
                the session
            StorageFailure: spin missing or any other database fault
        """
        if conn is not None:
            return await self._insert_selection(conn, spin_id, participant_id)

        async with self.pool.connection() as own_conn:
            await self._begin_write(own_conn)
            try:
                selection = await self._insert_selection(own_conn, spin_id, participant_id)
                await self._commit(own_conn)
            except Exception:
                await own_conn.rollback()
                raise
        return selection

    async def record_spin(
        self,
        session_id: int,
        participant: Participant,
        pool_size: int,
    ) -> RecordedSpin:
        """Insert a Spin snapshot and its single Selection in one transaction.

        Nothing is left behind when either insert fails.

        Raises:
            SessionNotFound / SessionInactive: session gone or deactivated
                since the pool was read
            DuplicateSelection: participant was selected concurrently, or
                left the session (``ParticipantUnavailable``)
            StorageFailure: any other database fault
        """
        async with self.pool.connection() as conn:
            await self._begin_write(conn)
            try:
                await self._require_active_session(conn, session_id)
                created_at = utc_now_iso()
                spin_result: Dict[str, Any] = {
                    "winner": participant.public_fields(),
                    "pool_size": pool_size,
                    "timestamp": created_at,
                }
                try:
                    cursor = await conn.execute(
                        "INSERT INTO spins (session_id, spin_result, created_at) VALUES (?, ?, ?)",
                        (session_id, json.dumps(spin_result), created_at),
                    )
                except sqlite3.Error as e:
                    raise StorageFailure(f"Could not record spin: {e}") from e
                spin = Spin(
                    id=cursor.lastrowid,
                    session_id=session_id,
                    spin_result=spin_result,
                    created_at=created_at,
                )
                selection = await self.record(spin.id, participant.id, conn=conn)
                await self._commit(conn)
            except Exception:
                await conn.rollback()
                raise
        return RecordedSpin(spin=spin, selection=selection)

    @staticmethod
    async def _begin_write(conn: aiosqlite.Connection) -> None:
        """Take SQLite's write lock up front; writers queue on busy_timeout."""
        try:
            await conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not start write transaction: {e}") from e

    @staticmethod
    async def _require_active_session(conn: aiosqlite.Connection, session_id: int) -> None:
        try:
            cursor = await conn.execute(
                "SELECT is_active FROM sessions WHERE id=?",
                (session_id,)
            )
            row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not read session: {e}") from e
        if row is None:
            raise SessionNotFound()
        if not row["is_active"]:
            logger.warning(f"Spin on session {session_id} rejected: session was deactivated")
            raise SessionInactive()

    @staticmethod
    async def _commit(conn: aiosqlite.Connection) -> None:
        try:
            await conn.commit()
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not commit selection: {e}") from e

    async def _insert_selection(
        self,
        conn: aiosqlite.Connection,
        spin_id: int,
        participant_id: int,
    ) -> Selection:
        try:
            cursor = await conn.execute(
                "SELECT session_id FROM spins WHERE id=?",
                (spin_id,)
            )
            spin_row = await cursor.fetchone()
            if spin_row is None:
                raise StorageFailure(f"Spin {spin_id} does not exist")
            session_id = spin_row["session_id"]

            cursor = await conn.execute(
                "SELECT 1 FROM participants WHERE id=? AND session_id=? AND is_active=1",
                (participant_id, session_id)
            )
            if await cursor.fetchone() is None:
                logger.warning(
                    f"Selection rejected: participant {participant_id} is not an active "
                    f"member of session {session_id} (spin {spin_id})"
                )
                raise ParticipantUnavailable(
                    f"Participant {participant_id} is not an active member of session {session_id}"
                )
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not record selection: {e}") from e

        created_at = utc_now_iso()
        try:
            cursor = await conn.execute(
                """
                INSERT INTO selections (spin_id, session_id, participant_id, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (spin_id, session_id, participant_id, created_at),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                logger.warning(
                    f"Duplicate selection rejected: participant {participant_id} "
                    f"in session {session_id} (spin {spin_id})"
                )
                raise DuplicateSelection() from e
            raise StorageFailure(f"Selection rejected by storage: {e}") from e
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not record selection: {e}") from e
        return Selection(
            id=cursor.lastrowid,
            spin_id=spin_id,
            session_id=session_id,
            participant_id=participant_id,
            created_at=created_at,
        )

    async def list(self, session_id: int) -> List[SelectedParticipant]:
        """Selections of a session, oldest first (winner #1, #2, ...)."""
        rows = await self.fetch_all(
            """
            SELECT sel.id, sel.spin_id, sel.participant_id, sel.created_at,
                   p.name, p.external_id, p.team
            FROM selections sel
            JOIN participants p ON p.id = sel.participant_id
            WHERE sel.session_id = ?
            ORDER BY sel.created_at ASC, sel.id ASC
            """,
            (session_id,)
        )
        return [SelectedParticipant.from_row(row) for row in rows]

    async def eligible_pool(self, session_id: int) -> List[Participant]:
        """Active participants of the session not yet selected, newest first."""
        rows = await self.fetch_all(
            """
            SELECT p.*
            FROM participants p
            WHERE p.session_id = ?
              AND p.is_active = 1
              AND NOT EXISTS (
                  SELECT 1 FROM selections sel
                  WHERE sel.session_id = p.session_id
                    AND sel.participant_id = p.id
              )
            ORDER BY p.created_at DESC, p.id DESC
            """,
            (session_id,)
        )
        return [Participant.from_row(row) for row in rows]

    async def counts(self, session_id: int) -> Dict[str, int]:
        """Available, total and selected participant counts for a session."""
        row = await self.fetch_one(
            """
            SELECT
                (SELECT COUNT(*) FROM participants
                 WHERE session_id = ? AND is_active = 1) AS total,
                (SELECT COUNT(*) FROM selections
                 WHERE session_id = ?) AS selected,
                (SELECT COUNT(*) FROM participants p
                 WHERE p.session_id = ? AND p.is_active = 1
                   AND NOT EXISTS (
                       SELECT 1 FROM selections sel
                       WHERE sel.session_id = p.session_id AND sel.participant_id = p.id
                   )) AS available
            """,
            (session_id, session_id, session_id)
        )
        return {
            "available": row["available"],
            "total": row["total"],
            "selected": row["selected"],
        }
