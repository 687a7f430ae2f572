"""Services package."""

from .async_runner import (
    set_main_loop,
    start_background_loop,
    stop_background_loop,
    run_coroutine_sync,
)
from .broadcaster import Broadcaster, RealtimeMessage, SocketIOBroadcaster
from .delayed_publisher import DelayedPublisher
from .selection_ledger import SelectionLedger, RecordedSpin
from .session_service import SessionService
from .registration_service import RegistrationService
from .spin_engine import SpinEngine, SpinOutcome
from .registry import ServiceRegistry, build_services

__all__ = [
    "set_main_loop",
    "start_background_loop",
    "stop_background_loop",
    "run_coroutine_sync",
    "Broadcaster",
    "RealtimeMessage",
    "SocketIOBroadcaster",
    "DelayedPublisher",
    "SelectionLedger",
    "RecordedSpin",
    "SessionService",
    "RegistrationService",
    "SpinEngine",
    "SpinOutcome",
    "ServiceRegistry",
    "build_services",
]
