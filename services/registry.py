"""Wiring of repositories and services for one application instance."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from database.connection import OptimizedSQLitePool
from database.repositories import ParticipantRepository, SessionRepository
from services.broadcaster import Broadcaster
from services.delayed_publisher import DelayedPublisher
from services.registration_service import RegistrationService
from services.selection_ledger import SelectionLedger
from services.session_service import SessionService
from services.spin_engine import Chooser, SpinEngine

if TYPE_CHECKING:
    from config import Config


@dataclass
class ServiceRegistry:
    sessions: SessionService
    participants: ParticipantRepository
    ledger: SelectionLedger
    registration: RegistrationService
    spin_engine: SpinEngine
    publisher: DelayedPublisher
    broadcaster: Broadcaster
    spin_retry_attempts: int


def build_services(
    config: Config,
    broadcaster: Broadcaster,
    pool: Optional[OptimizedSQLitePool] = None,
    rng: Optional[Chooser] = None,
) -> ServiceRegistry:
    """Build the service graph around one broadcaster.

    Without ``pool`` the repositories use the process-wide pool.
    """
    participants = ParticipantRepository(pool)
    ledger = SelectionLedger(pool)
    sessions = SessionService(SessionRepository(pool), config.public_base_url)
    publisher = DelayedPublisher(broadcaster)
    registration = RegistrationService(
        participants=participants,
        sessions=sessions,
        ledger=ledger,
        broadcaster=broadcaster,
        email_domain=config.registration_email_domain,
    )
    spin_engine = SpinEngine(
        sessions=sessions,
        ledger=ledger,
        publisher=publisher,
        reveal_delay=config.spin_reveal_delay,
        rng=rng,
    )
    return ServiceRegistry(
        sessions=sessions,
        participants=participants,
        ledger=ledger,
        registration=registration,
        spin_engine=spin_engine,
        publisher=publisher,
        broadcaster=broadcaster,
        spin_retry_attempts=config.spin_retry_attempts,
    )
