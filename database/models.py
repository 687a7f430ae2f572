"""Data access layer models implemented with handcrafted queries."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with microseconds."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


@dataclass(slots=True)
class Session:
    id: int
    admin_username: str
    session_token: str
    public_url: str
    is_active: bool
    created_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Session":
        return cls(
            id=row["id"],
            admin_username=row["admin_username"],
            session_token=row["session_token"],
            public_url=row["public_url"],
            is_active=bool(row["is_active"]),
            created_at=row["created_at"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class Participant:
    id: int
    session_id: int
    name: str
    external_id: str
    email: str
    team: Optional[str]
    mobile: Optional[str]
    is_active: bool
    created_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Participant":
        return cls(
            id=row["id"],
            session_id=row["session_id"],
            name=row["name"],
            external_id=row["external_id"],
            email=row["email"],
            team=row["team"],
            mobile=row["mobile"],
            is_active=bool(row["is_active"]),
            created_at=row["created_at"],
        )

    def public_fields(self) -> Dict[str, Any]:
        """Identity fields safe to show on every screen of the session."""
        return {
            "id": self.id,
            "name": self.name,
            "external_id": self.external_id,
            "team": self.team,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class Spin:
    id: int
    session_id: int
    spin_result: Dict[str, Any]
    created_at: str


@dataclass(slots=True)
class Selection:
    id: int
    spin_id: int
    session_id: int
    participant_id: int
    created_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Selection":
        return cls(
            id=row["id"],
            spin_id=row["spin_id"],
            session_id=row["session_id"],
            participant_id=row["participant_id"],
            created_at=row["created_at"],
        )


@dataclass(slots=True)
class SelectedParticipant:
    """A Selection joined with the public fields of the chosen participant."""
    id: int
    spin_id: int
    participant_id: int
    name: str
    external_id: str
    team: Optional[str]
    created_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SelectedParticipant":
        return cls(
            id=row["id"],
            spin_id=row["spin_id"],
            participant_id=row["participant_id"],
            name=row["name"],
            external_id=row["external_id"],
            team=row["team"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
