"""Uniform random winner selection with an at-most-once guarantee."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

from prometheus_client import Counter

from core import get_logger, SpinDefaults
from core.exceptions import (
    ApplicationError,
    DuplicateSelection,
    NoEligibleParticipants,
)
from database.models import Participant
from services.broadcaster import RealtimeMessage
from services.delayed_publisher import DelayedPublisher
from services.selection_ledger import SelectionLedger
from services.session_service import SessionService

logger = get_logger(__name__)

SPINS_TOTAL = Counter(
    "spins_total",
    "Spin attempts by outcome",
    ["outcome"],
)


class Chooser(Protocol):
    def choice(self, seq: Sequence[Participant]) -> Participant: ...


@dataclass(slots=True)
class SpinOutcome:
    """What the triggering admin gets back from a successful spin."""
    winner: Dict[str, Any]
    spin_id: int
    selection_id: int
    pool_size: int
    remaining: int
    timestamp: str

    def to_response(self) -> Dict[str, Any]:
        return {
            "winner": self.winner,
            "spin_id": self.spin_id,
            "remaining_users": self.remaining,
            "timestamp": self.timestamp,
            "message": "Spin completed successfully",
        }

    def to_event(self) -> Dict[str, Any]:
        """``spin_result`` wire payload."""
        return {
            "winner": self.winner,
            "spin_id": self.spin_id,
            "remaining_users": self.remaining,
            "timestamp": self.timestamp,
        }


class SpinEngine:
    """Sole writer of selection state.

    Each spin recomputes the eligible pool from the database, draws one
    participant uniformly at random and records Spin + Selection in one
    transaction. Concurrent spins on the same session are arbitrated by the
    ledger's unique index; the loser gets ``DuplicateSelection``.

    The ``spin_result`` announcement goes through the delayed publisher so
    clients can play the wheel animation before the reveal.
    """

    def __init__(
        self,
        sessions: SessionService,
        ledger: SelectionLedger,
        publisher: Optional[DelayedPublisher] = None,
        reveal_delay: float = SpinDefaults.REVEAL_DELAY,
        rng: Optional[Chooser] = None,
    ) -> None:
        self.sessions = sessions
        self.ledger = ledger
        self.publisher = publisher
        self.reveal_delay = reveal_delay
        self.rng = rng or random.SystemRandom()

    async def spin(self, session_id: int, admin_username: Optional[str] = None) -> SpinOutcome:
        """Select one not-yet-chosen active participant of the session.

        Raises:
            SessionNotFound / SessionInactive: bad or foreign session
            NoEligibleParticipants: everyone has already been selected
            DuplicateSelection: lost a race for the drawn participant, or it
                was removed after the pool was read
            StorageFailure: database fault; nothing was recorded
        """
        await self.sessions.require_active_session(session_id, admin_username)

        pool = await self.ledger.eligible_pool(session_id)
        if not pool:
            SPINS_TOTAL.labels(outcome="empty_pool").inc()
            logger.info(f"Spin on session {session_id} rejected: pool is empty")
            raise NoEligibleParticipants()

        winner = self.rng.choice(pool)
        try:
            recorded = await self.ledger.record_spin(session_id, winner, len(pool))
        except ApplicationError as e:
            SPINS_TOTAL.labels(outcome=e.code).inc()
            raise

        outcome = SpinOutcome(
            winner=winner.public_fields(),
            spin_id=recorded.spin.id,
            selection_id=recorded.selection.id,
            pool_size=len(pool),
            remaining=len(pool) - 1,
            timestamp=recorded.selection.created_at,
        )
        SPINS_TOTAL.labels(outcome="selected").inc()
        logger.info(
            f"Spin {outcome.spin_id} on session {session_id}: winner {winner.id} "
            f"from pool of {outcome.pool_size}, {outcome.remaining} remaining"
        )

        self._announce(session_id, outcome)
        return outcome

    async def spin_with_retry(
        self,
        session_id: int,
        admin_username: Optional[str] = None,
        max_attempts: int = SpinDefaults.RETRY_ATTEMPTS,
    ) -> SpinOutcome:
        """Re-run the whole spin after losing a selection race.

        A ``DuplicateSelection`` means another spin committed or the drawn
        participant was removed, so every retry draws from a strictly smaller
        pool and ends in a winner or ``NoEligibleParticipants``.
        """
        attempt = 1
        while True:
            try:
                return await self.spin(session_id, admin_username)
            except DuplicateSelection:
                if attempt >= max_attempts:
                    logger.error(
                        f"Spin on session {session_id} lost {attempt} races in a row, giving up"
                    )
                    raise
                logger.warning(
                    f"Spin on session {session_id} lost a race, retrying "
                    f"({attempt}/{max_attempts})"
                )
                attempt += 1

    def _announce(self, session_id: int, outcome: SpinOutcome) -> None:
        if self.publisher is None:
            return
        self.publisher.schedule(
            session_id,
            RealtimeMessage.spin_result(outcome.to_event()),
            self.reveal_delay,
        )
