"""
Pydantic models for profiles, teams, slots and match suggestions.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


def new_id() -> str:
    """Generate a record identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Position(str, Enum):
    """Closed set of positions a profile or slot can declare."""

    FRONTEND = "frontend"
    BACKEND = "backend"
    DESIGN = "design"
    BUSINESS = "business"


class Role(str, Enum):
    """Account role."""

    LEADER = "leader"  # Owns at most one team
    MEMBER = "member"  # Can be invited to slots

    @property
    def opposite(self) -> "Role":
        return Role.MEMBER if self is Role.LEADER else Role.LEADER


class InvitationStatus(str, Enum):
    """Stored invitation status of an assigned slot."""

    PENDING = "pending"  # Candidate assigned, awaiting their decision
    ACCEPTED = "accepted"  # Candidate confirmed, membership established


class SlotState(str, Enum):
    """Lifecycle state of a slot as seen by callers."""

    UNASSIGNED = "unassigned"
    PENDING = "pending"
    ACCEPTED = "accepted"


class Caller(BaseModel):
    """Identity handed in by the account subsystem. Trusted as-is."""

    subject_id: str
    role: Role

    @property
    def is_leader(self) -> bool:
        return self.role is Role.LEADER


class Profile(BaseModel):
    """Candidate projection visible to matching."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., description="Display name")
    role: Role = Field(default=Role.MEMBER)
    position: Position = Field(..., description="Declared position")
    skills: list[str] = Field(default_factory=list, description="Free-text skills")
    description: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class SlotRequirement(BaseModel):
    """What a slot asks for: a position and a list of skills."""

    position: Position
    skills: list[str] = Field(default_factory=list)


class Slot(SlotRequirement):
    """Open position within a team, with at most one candidate assignment."""

    id: str = Field(default_factory=new_id)
    candidate_id: Optional[str] = Field(default=None, description="Assigned candidate")
    status: Optional[InvitationStatus] = Field(default=None)
    claim_id: Optional[str] = Field(
        default=None, description="Membership claim backing an accepted slot"
    )

    @model_validator(mode="after")
    def _status_requires_candidate(self) -> "Slot":
        if (self.status is None) != (self.candidate_id is None):
            raise ValueError("status is set if and only if a candidate is assigned")
        if self.claim_id is not None and self.status is not InvitationStatus.ACCEPTED:
            raise ValueError("only an accepted slot carries a membership claim")
        return self

    @property
    def state(self) -> SlotState:
        if self.status is None:
            return SlotState.UNASSIGNED
        return SlotState(self.status.value)

    @property
    def requirement(self) -> SlotRequirement:
        return SlotRequirement(position=self.position, skills=list(self.skills))


class Team(BaseModel):
    """A leader's team and its ordered slots."""

    id: str = Field(default_factory=new_id)
    name: str
    leader_id: str
    slots: list[Slot] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    def get_slot(self, slot_id: str) -> Optional[Slot]:
        """Find a slot by id."""
        for slot in self.slots:
            if slot.id == slot_id:
                return slot
        return None


class Membership(BaseModel):
    """Secondary index entry: candidate -> the one slot they accepted."""

    candidate_id: str
    team_id: str
    slot_id: str
    claim_id: str = Field(default_factory=new_id, description="Token of this claim")
    joined_at: datetime = Field(default_factory=utcnow)

    def points_at(self, team_id: str, slot_id: str) -> bool:
        return self.team_id == team_id and self.slot_id == slot_id


class Suggestion(BaseModel):
    """Scored candidate recommendation. Produced per query, never stored."""

    candidate_id: str
    candidate: Profile
    score: int = Field(..., ge=0, le=100)
    matched_skills: list[str] = Field(default_factory=list)
    reason: str = ""


class Invitation(BaseModel):
    """A slot addressed to a candidate, as listed for that candidate."""

    team_id: str
    team_name: str
    slot_id: str
    position: Position
    skills: list[str]
    leader_id: str
    status: InvitationStatus
