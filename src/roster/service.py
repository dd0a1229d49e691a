"""
Team service: profiles, teams and slots, with slot transitions delegated
to the lifecycle manager and suggestions to the matcher.
"""

from typing import Any, Optional, Union

from loguru import logger

from matcher.service import Matcher
from matcher.skills import clean_skills
from shared.config import Settings, get_settings
from shared.database import Repository
from shared.errors import (
    ConflictError,
    ErrorReason,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from shared.models import (
    Caller,
    Invitation,
    InvitationStatus,
    Position,
    Profile,
    Role,
    Slot,
    SlotRequirement,
    Suggestion,
    Team,
)

from .lifecycle import SlotLifecycleManager


def parse_position(value: Union[Position, str, None], default: Optional[Position] = None) -> Position:
    """Coerce a position, rejecting values outside the closed set."""
    if value is None or value == "":
        if default is None:
            raise ValidationError("position is required", ErrorReason.MISSING_FIELD)
        return default
    try:
        return Position(value)
    except ValueError:
        raise ValidationError(
            f"Invalid position: {value}",
            ErrorReason.INVALID_POSITION,
            {"allowed": [p.value for p in Position]},
        ) from None


class TeamService:
    """Entry point used by the HTTP layer and the CLI."""

    def __init__(
        self,
        repository: Repository,
        matcher: Optional[Matcher] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository
        self.matcher = matcher or Matcher.from_settings(self.settings)
        self.lifecycle = SlotLifecycleManager(repository)

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    async def register_profile(self, profile: Profile) -> Profile:
        """Store a new profile snapshot."""
        profile = profile.model_copy(update={"skills": clean_skills(profile.skills)})
        if not await self.repository.insert_profile(profile):
            raise ConflictError(
                "Profile already exists",
                ErrorReason.PROFILE_EXISTS,
                {"profile_id": profile.id, "email": profile.email},
            )
        logger.info(f"Registered {profile.role.value} {profile.name} ({profile.id})")
        return profile

    async def get_profile(self, profile_id: str) -> Profile:
        profile = await self.repository.get_profile(profile_id)
        if profile is None:
            raise NotFoundError(
                f"Profile {profile_id} not found",
                ErrorReason.CANDIDATE_NOT_FOUND,
                {"profile_id": profile_id},
            )
        return profile

    async def list_profiles(
        self, role: Optional[Role] = None, position: Optional[Position] = None
    ) -> list[Profile]:
        return await self.repository.list_profiles(role=role, position=position)

    async def update_profile(
        self,
        caller: Caller,
        profile_id: str,
        name: Optional[str] = None,
        position: Optional[str] = None,
        skills: Optional[list[str]] = None,
        description: Optional[str] = None,
    ) -> Profile:
        """Update the caller's own profile. Omitted fields are kept."""
        if caller.subject_id != profile_id:
            raise PermissionDenied(
                "You can only edit your own profile",
                ErrorReason.NOT_OWNER,
                {"profile_id": profile_id},
            )

        fields: dict[str, Any] = {}
        if name:
            fields["name"] = name
        if position:
            fields["position"] = parse_position(position).value
        if skills is not None:
            fields["skills"] = clean_skills(skills)
        if description is not None:
            fields["description"] = description

        if not fields:
            return await self.get_profile(profile_id)

        updated = await self.repository.update_profile(profile_id, fields)
        if updated is None:
            raise NotFoundError(
                f"Profile {profile_id} not found",
                ErrorReason.CANDIDATE_NOT_FOUND,
                {"profile_id": profile_id},
            )
        return updated

    # -------------------------------------------------------------------------
    # Teams
    # -------------------------------------------------------------------------

    async def create_team(self, caller: Caller, name: Optional[str] = None) -> Team:
        """Create the caller's team. A leader owns at most one team."""
        if not caller.is_leader:
            raise PermissionDenied(
                "Only leaders can create teams",
                ErrorReason.INELIGIBLE_ROLE,
                {"role": caller.role.value},
            )

        team = Team(
            name=(name or "").strip() or self.settings.default_team_name,
            leader_id=caller.subject_id,
        )
        existing = await self.repository.get_team_by_leader(caller.subject_id)
        if existing is not None or not await self.repository.insert_team(team):
            raise ConflictError(
                "You already have a team",
                ErrorReason.TEAM_EXISTS,
                {"leader_id": caller.subject_id},
            )

        logger.info(f"Created team {team.name} ({team.id}) for {caller.subject_id}")
        return team

    async def get_team(self, team_id: str) -> Team:
        team = await self.repository.get_team(team_id)
        if team is None:
            raise NotFoundError(
                f"Team {team_id} not found",
                ErrorReason.TEAM_NOT_FOUND,
                {"team_id": team_id},
            )
        return team

    async def get_team_for_leader(self, caller: Caller) -> Optional[Team]:
        return await self.repository.get_team_by_leader(caller.subject_id)

    async def list_teams(self) -> list[Team]:
        return await self.repository.list_teams()

    async def _owned_team(self, caller: Caller, team_id: str) -> Team:
        team = await self.get_team(team_id)
        if not caller.is_leader or team.leader_id != caller.subject_id:
            raise PermissionDenied(
                "Not your team", ErrorReason.NOT_OWNER, {"team_id": team_id}
            )
        return team

    # -------------------------------------------------------------------------
    # Slots
    # -------------------------------------------------------------------------

    async def add_slot(
        self,
        caller: Caller,
        team_id: str,
        position: Union[Position, str, None] = None,
        skills: Optional[list[str]] = None,
    ) -> Team:
        """Append an unassigned slot. Position defaults to frontend."""
        await self._owned_team(caller, team_id)
        slot = Slot(
            position=parse_position(position, default=Position.FRONTEND),
            skills=clean_skills(skills),
        )
        team = await self.repository.push_slot(team_id, slot)
        if team is None:
            raise NotFoundError(
                f"Team {team_id} not found",
                ErrorReason.TEAM_NOT_FOUND,
                {"team_id": team_id},
            )
        logger.info(f"Added {slot.position.value} slot {slot.id} to team {team_id}")
        return team

    async def update_slot_requirement(
        self,
        caller: Caller,
        team_id: str,
        slot_id: str,
        position: Union[Position, str, None] = None,
        skills: Optional[list[str]] = None,
    ) -> Slot:
        """Change a slot's position or skills until a candidate accepts it."""
        team = await self._owned_team(caller, team_id)
        slot = team.get_slot(slot_id)
        if slot is None:
            raise NotFoundError(
                f"Slot {slot_id} not found in team {team_id}",
                ErrorReason.SLOT_NOT_FOUND,
                {"team_id": team_id, "slot_id": slot_id},
            )

        new_position = parse_position(position, default=slot.position)
        new_skills = clean_skills(skills) if skills is not None else slot.skills

        locked = ConflictError(
            "Slot requirements are locked once a candidate accepts",
            ErrorReason.SLOT_LOCKED,
            {"slot_id": slot_id},
        )
        if slot.status is InvitationStatus.ACCEPTED:
            raise locked

        updated = await self.repository.update_slot_requirement(
            team_id, slot_id, new_position, new_skills
        )
        if not updated:
            # Removed or accepted since it was read
            current = (await self.get_team(team_id)).get_slot(slot_id)
            if current is None:
                raise NotFoundError(
                    f"Slot {slot_id} not found in team {team_id}",
                    ErrorReason.SLOT_NOT_FOUND,
                    {"team_id": team_id, "slot_id": slot_id},
                )
            raise locked

        return slot.model_copy(update={"position": new_position, "skills": new_skills})

    async def assign(
        self, caller: Caller, team_id: str, slot_id: str, candidate_id: Optional[str]
    ) -> Slot:
        return await self.lifecycle.assign(caller, team_id, slot_id, candidate_id)

    async def accept(self, caller: Caller, team_id: str, slot_id: str) -> Slot:
        return await self.lifecycle.accept(caller, team_id, slot_id)

    async def decline(self, caller: Caller, team_id: str, slot_id: str) -> Slot:
        return await self.lifecycle.decline(caller, team_id, slot_id)

    async def unassign(self, caller: Caller, team_id: str, slot_id: str) -> Slot:
        return await self.lifecycle.unassign(caller, team_id, slot_id)

    async def delete_slot(self, caller: Caller, team_id: str, slot_id: str) -> Slot:
        return await self.lifecycle.delete_slot(caller, team_id, slot_id)

    async def list_invitations(self, caller: Caller) -> list[Invitation]:
        """Slots across all teams addressed to the caller, pending or accepted."""
        invitations = []
        for team in await self.repository.list_teams_with_candidate(caller.subject_id):
            for slot in team.slots:
                if slot.candidate_id != caller.subject_id:
                    continue
                invitations.append(
                    Invitation(
                        team_id=team.id,
                        team_name=team.name,
                        slot_id=slot.id,
                        position=slot.position,
                        skills=list(slot.skills),
                        leader_id=team.leader_id,
                        status=slot.status,
                    )
                )
        return invitations

    # -------------------------------------------------------------------------
    # Suggestions
    # -------------------------------------------------------------------------

    async def candidate_pool(self, caller: Caller) -> list[Profile]:
        """Opposite-role profiles, excluding the caller."""
        profiles = await self.repository.list_profiles(role=caller.role.opposite)
        return [p for p in profiles if p.id != caller.subject_id]

    async def suggest(
        self,
        caller: Caller,
        position: Union[Position, str, None],
        skills: Optional[list[str]],
    ) -> list[Suggestion]:
        """Rank candidates for an ad-hoc position and skill query."""
        requirement = SlotRequirement(
            position=parse_position(position), skills=clean_skills(skills)
        )
        pool = await self.candidate_pool(caller)
        return await self.matcher.rank(
            requirement, pool, looking_as_leader=caller.is_leader
        )

    async def suggest_for_slot(
        self, caller: Caller, team_id: str, slot_id: str
    ) -> list[Suggestion]:
        """Rank members for one of the caller's slots."""
        team = await self._owned_team(caller, team_id)
        slot = team.get_slot(slot_id)
        if slot is None:
            raise NotFoundError(
                f"Slot {slot_id} not found in team {team_id}",
                ErrorReason.SLOT_NOT_FOUND,
                {"team_id": team_id, "slot_id": slot_id},
            )
        pool = await self.candidate_pool(caller)
        return await self.matcher.rank(slot.requirement, pool, looking_as_leader=True)
