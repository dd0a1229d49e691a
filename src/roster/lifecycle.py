"""
Slot lifecycle: unassigned -> pending -> accepted, with decline and
unassignment returning a slot to unassigned.

Every transition is a compare-and-set on one slot. Accepting also claims the
candidate's entry in the membership index, whose unique key guarantees that
a candidate holds at most one accepted slot across all teams.
"""

from typing import Optional

from loguru import logger

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
    InvitationStatus,
    Membership,
    Role,
    Slot,
    Team,
)


class SlotLifecycleManager:
    """Guards and applies slot transitions on top of a repository."""

    def __init__(self, repository: Repository):
        self.repository = repository

    # -------------------------------------------------------------------------
    # Loading and guards
    # -------------------------------------------------------------------------

    async def _load(self, team_id: str, slot_id: str) -> tuple[Team, Slot]:
        team = await self.repository.get_team(team_id)
        if team is None:
            raise NotFoundError(
                f"Team {team_id} not found",
                ErrorReason.TEAM_NOT_FOUND,
                {"team_id": team_id},
            )
        slot = team.get_slot(slot_id)
        if slot is None:
            raise NotFoundError(
                f"Slot {slot_id} not found in team {team_id}",
                ErrorReason.SLOT_NOT_FOUND,
                {"team_id": team_id, "slot_id": slot_id},
            )
        return team, slot

    async def _reload_slot(self, team_id: str, slot_id: str) -> Slot:
        _, slot = await self._load(team_id, slot_id)
        return slot

    @staticmethod
    def _require_owner(caller: Caller, team: Team) -> None:
        if not caller.is_leader or team.leader_id != caller.subject_id:
            raise PermissionDenied(
                "Only the team leader can change this team",
                ErrorReason.NOT_OWNER,
                {"team_id": team.id},
            )

    @staticmethod
    def _require_invitee(caller: Caller, slot: Slot) -> None:
        if slot.candidate_id != caller.subject_id:
            raise ConflictError(
                "This invitation is not addressed to you",
                ErrorReason.NOT_INVITEE,
                {"slot_id": slot.id},
            )

    @staticmethod
    def _already_member(candidate_id: str, membership: Membership) -> ConflictError:
        return ConflictError(
            "Candidate already joined another team",
            ErrorReason.ALREADY_MEMBER,
            {
                "candidate_id": candidate_id,
                "team_id": membership.team_id,
                "slot_id": membership.slot_id,
            },
        )

    @staticmethod
    def _invalid_transition(slot: Slot, action: str) -> ConflictError:
        return ConflictError(
            f"Cannot {action} a slot in state {slot.state.value}",
            ErrorReason.INVALID_TRANSITION,
            {"slot_id": slot.id, "state": slot.state.value},
        )

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def assign(
        self, caller: Caller, team_id: str, slot_id: str, candidate_id: Optional[str]
    ) -> Slot:
        """
        Invite a candidate to a slot (leader action).

        Re-assigning the candidate already on the slot returns the slot
        unchanged.

        Raises:
            ValidationError: missing candidate id, or candidate is not a member
            PermissionDenied: caller does not own the team
            NotFoundError: team, slot or candidate does not exist
            ConflictError: candidate already joined a team, or the slot
                holds another candidate
        """
        if not candidate_id or not candidate_id.strip():
            raise ValidationError("candidate_id is required", ErrorReason.MISSING_FIELD)

        team, slot = await self._load(team_id, slot_id)
        self._require_owner(caller, team)

        candidate = await self.repository.get_profile(candidate_id)
        if candidate is None:
            raise NotFoundError(
                f"Candidate {candidate_id} not found",
                ErrorReason.CANDIDATE_NOT_FOUND,
                {"candidate_id": candidate_id},
            )
        if candidate.role is not Role.MEMBER:
            raise ValidationError(
                "Can only invite members, not leaders",
                ErrorReason.INELIGIBLE_ROLE,
                {"candidate_id": candidate_id, "role": candidate.role.value},
            )

        if slot.candidate_id == candidate_id:
            logger.debug(f"Candidate {candidate_id} already on slot {slot_id}")
            return slot

        # The slot does not hold the candidate, so any claim is either another
        # team's or one still being released from this slot
        membership = await self.repository.get_membership(candidate_id)
        if membership is not None:
            raise self._already_member(candidate_id, membership)

        if slot.candidate_id is not None:
            raise ConflictError(
                "Slot already has a candidate assigned",
                ErrorReason.SLOT_TAKEN,
                {"slot_id": slot_id, "candidate_id": slot.candidate_id},
            )

        swapped = await self.repository.compare_and_set_slot(
            team_id,
            slot_id,
            expected_candidate=None,
            expected_status=None,
            new_candidate=candidate_id,
            new_status=InvitationStatus.PENDING,
        )
        if not swapped:
            current = await self._reload_slot(team_id, slot_id)
            if current.candidate_id == candidate_id:
                return current
            raise ConflictError(
                "Slot was assigned concurrently",
                ErrorReason.SLOT_TAKEN,
                {"slot_id": slot_id, "candidate_id": current.candidate_id},
            )

        logger.info(f"Invited {candidate_id} to slot {slot_id} of team {team_id}")
        return slot.model_copy(
            update={"candidate_id": candidate_id, "status": InvitationStatus.PENDING}
        )

    async def accept(self, caller: Caller, team_id: str, slot_id: str) -> Slot:
        """
        Accept an invitation (candidate action). The only transition that
        establishes team membership.

        Raises:
            NotFoundError: team or slot does not exist
            ConflictError: invitation is not the caller's, slot is not
                pending, or the caller already joined another team
        """
        _, slot = await self._load(team_id, slot_id)
        self._require_invitee(caller, slot)

        if slot.status is InvitationStatus.ACCEPTED:
            return slot
        if slot.status is not InvitationStatus.PENDING:
            raise self._invalid_transition(slot, "accept")

        candidate_id = caller.subject_id
        claim = Membership(candidate_id=candidate_id, team_id=team_id, slot_id=slot_id)
        holder = await self.repository.claim_membership(claim)
        if holder.claim_id != claim.claim_id:
            if holder.points_at(team_id, slot_id):
                current = await self._reload_slot(team_id, slot_id)
                if (
                    current.candidate_id == candidate_id
                    and current.claim_id == holder.claim_id
                ):
                    return current
            raise self._already_member(candidate_id, holder)

        swapped = await self.repository.compare_and_set_slot(
            team_id,
            slot_id,
            expected_candidate=candidate_id,
            expected_status=InvitationStatus.PENDING,
            new_candidate=candidate_id,
            new_status=InvitationStatus.ACCEPTED,
            new_claim_id=claim.claim_id,
        )
        if not swapped:
            await self.repository.release_membership(candidate_id, claim.claim_id)
            current = await self._reload_slot(team_id, slot_id)
            self._require_invitee(caller, current)
            raise self._invalid_transition(current, "accept")

        logger.info(f"{candidate_id} joined team {team_id} via slot {slot_id}")
        return slot.model_copy(
            update={"status": InvitationStatus.ACCEPTED, "claim_id": claim.claim_id}
        )

    async def decline(self, caller: Caller, team_id: str, slot_id: str) -> Slot:
        """
        Decline a pending invitation (candidate action).

        Raises:
            NotFoundError: team or slot does not exist
            ConflictError: invitation is not the caller's, or already accepted
        """
        _, slot = await self._load(team_id, slot_id)
        self._require_invitee(caller, slot)
        if slot.status is not InvitationStatus.PENDING:
            raise self._invalid_transition(slot, "decline")

        swapped = await self.repository.compare_and_set_slot(
            team_id,
            slot_id,
            expected_candidate=caller.subject_id,
            expected_status=InvitationStatus.PENDING,
            new_candidate=None,
            new_status=None,
        )
        if not swapped:
            current = await self._reload_slot(team_id, slot_id)
            self._require_invitee(caller, current)
            raise self._invalid_transition(current, "decline")

        logger.info(f"{caller.subject_id} declined slot {slot_id} of team {team_id}")
        return slot.model_copy(update={"candidate_id": None, "status": None})

    async def unassign(self, caller: Caller, team_id: str, slot_id: str) -> Slot:
        """
        Clear a slot in any state (leader action).

        A membership established through this slot is released; one that
        points at any other slot is left alone.
        """
        team, _ = await self._load(team_id, slot_id)
        self._require_owner(caller, team)

        before = await self.repository.clear_slot(team_id, slot_id)
        if before is None:
            raise NotFoundError(
                f"Slot {slot_id} not found in team {team_id}",
                ErrorReason.SLOT_NOT_FOUND,
                {"team_id": team_id, "slot_id": slot_id},
            )
        await self._release(before, team_id)

        logger.info(f"Cleared slot {slot_id} of team {team_id}")
        return before.model_copy(
            update={"candidate_id": None, "status": None, "claim_id": None}
        )

    async def delete_slot(self, caller: Caller, team_id: str, slot_id: str) -> Slot:
        """Remove a slot in any state (leader action). Returns the removed slot."""
        team, _ = await self._load(team_id, slot_id)
        self._require_owner(caller, team)

        removed = await self.repository.remove_slot(team_id, slot_id)
        if removed is None:
            raise NotFoundError(
                f"Slot {slot_id} not found in team {team_id}",
                ErrorReason.SLOT_NOT_FOUND,
                {"team_id": team_id, "slot_id": slot_id},
            )
        await self._release(removed, team_id)

        logger.info(f"Deleted slot {slot_id} of team {team_id}")
        return removed

    async def _release(self, slot: Slot, team_id: str) -> None:
        # Only the claim recorded on the slot being cleared may go
        if slot.claim_id is None:
            return
        released = await self.repository.release_membership(
            slot.candidate_id, slot.claim_id
        )
        if released:
            logger.info(f"{slot.candidate_id} left team {team_id}")
