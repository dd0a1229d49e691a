"""
Team, slot and profile management plus suggestion pool building.
"""

import pytest

from shared.errors import (
    ConflictError,
    ErrorReason,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from shared.models import InvitationStatus, Position, Role, SlotState

from tests.conftest import make_profile


# ============ Profiles ============


async def test_register_duplicate_profile(service, profiles):
    with pytest.raises(ConflictError) as exc_info:
        await service.register_profile(profiles["bob"])
    assert exc_info.value.reason is ErrorReason.PROFILE_EXISTS


async def test_register_cleans_skills(service):
    profile = await service.register_profile(
        make_profile("dora", Position.DESIGN, [" Figma ", "", "  "])
    )
    assert profile.skills == ["Figma"]


async def test_list_profiles_filters(service, profiles):
    members = await service.list_profiles(role=Role.MEMBER)
    assert {p.id for p in members} == {"alice", "bob", "carol"}

    backend = await service.list_profiles(position=Position.BACKEND)
    assert {p.id for p in backend} == {"bob", "lead-b"}


async def test_update_own_profile(service, profiles, bob):
    updated = await service.update_profile(
        bob, "bob", position="frontend", skills=["Vue"], description="switching sides"
    )

    assert updated.position is Position.FRONTEND
    assert updated.skills == ["Vue"]
    assert updated.description == "switching sides"
    assert updated.name == "Bob"


async def test_update_profile_of_someone_else(service, profiles, alice):
    with pytest.raises(PermissionDenied):
        await service.update_profile(alice, "bob", name="Mallory")


async def test_update_profile_invalid_position(service, profiles, bob):
    with pytest.raises(ValidationError) as exc_info:
        await service.update_profile(bob, "bob", position="devops")
    assert exc_info.value.reason is ErrorReason.INVALID_POSITION


async def test_get_missing_profile(service):
    with pytest.raises(NotFoundError):
        await service.get_profile("ghost")


# ============ Teams ============


async def test_create_team_defaults_name(service, profiles, leader, settings):
    team = await service.create_team(leader)

    assert team.name == settings.default_team_name
    assert team.leader_id == leader.subject_id
    assert await service.get_team_for_leader(leader) == team


async def test_leader_owns_one_team(service, profiles, leader):
    await service.create_team(leader, "First")

    with pytest.raises(ConflictError) as exc_info:
        await service.create_team(leader, "Second")
    assert exc_info.value.reason is ErrorReason.TEAM_EXISTS


async def test_member_cannot_create_team(service, profiles, alice):
    with pytest.raises(PermissionDenied) as exc_info:
        await service.create_team(alice, "Nope")
    assert exc_info.value.reason is ErrorReason.INELIGIBLE_ROLE


async def test_get_missing_team(service):
    with pytest.raises(NotFoundError) as exc_info:
        await service.get_team("ghost")
    assert exc_info.value.reason is ErrorReason.TEAM_NOT_FOUND


async def test_list_teams(service, team_a, team_b):
    assert {t.name for t in await service.list_teams()} == {"Team A", "Team B"}


# ============ Slots ============


async def test_add_slot_defaults_to_frontend(service, profiles, leader):
    team = await service.create_team(leader)
    team = await service.add_slot(leader, team.id, None, [" React ", ""])

    slot = team.slots[0]
    assert slot.position is Position.FRONTEND
    assert slot.skills == ["React"]
    assert slot.state is SlotState.UNASSIGNED


async def test_add_slot_invalid_position(service, team_a, leader):
    with pytest.raises(ValidationError) as exc_info:
        await service.add_slot(leader, team_a.id, "devops", ["Docker"])
    assert exc_info.value.reason is ErrorReason.INVALID_POSITION


async def test_add_slot_to_someone_elses_team(service, team_a, other_leader):
    with pytest.raises(PermissionDenied) as exc_info:
        await service.add_slot(other_leader, team_a.id, "design", ["Figma"])
    assert exc_info.value.reason is ErrorReason.NOT_OWNER


async def test_slots_keep_order(service, team_a, leader):
    await service.add_slot(leader, team_a.id, "design", ["Figma"])
    team = await service.add_slot(leader, team_a.id, "business", ["Pitching"])

    assert [s.position for s in team.slots] == [
        Position.BACKEND,
        Position.DESIGN,
        Position.BUSINESS,
    ]


async def test_update_pending_slot_requirement(service, team_a, leader):
    slot_id = team_a.slots[0].id
    await service.assign(leader, team_a.id, slot_id, "bob")

    slot = await service.update_slot_requirement(
        leader, team_a.id, slot_id, skills=["Node.js", "Redis"]
    )

    assert slot.position is Position.BACKEND
    assert slot.skills == ["Node.js", "Redis"]
    assert slot.candidate_id == "bob"


async def test_accepted_slot_requirement_is_locked(service, team_a, leader, bob):
    slot_id = team_a.slots[0].id
    await service.assign(leader, team_a.id, slot_id, "bob")
    await service.accept(bob, team_a.id, slot_id)

    with pytest.raises(ConflictError) as exc_info:
        await service.update_slot_requirement(leader, team_a.id, slot_id, position="design")
    assert exc_info.value.reason is ErrorReason.SLOT_LOCKED


# ============ Invitations ============


async def test_list_invitations(service, team_a, team_b, leader, other_leader, bob, alice):
    await service.assign(leader, team_a.id, team_a.slots[0].id, "bob")
    await service.assign(other_leader, team_b.id, team_b.slots[0].id, "bob")
    await service.accept(bob, team_b.id, team_b.slots[0].id)

    invitations = {i.team_id: i for i in await service.list_invitations(bob)}

    assert set(invitations) == {team_a.id, team_b.id}
    assert invitations[team_a.id].status is InvitationStatus.PENDING
    assert invitations[team_a.id].team_name == "Team A"
    assert invitations[team_a.id].leader_id == leader.subject_id
    assert invitations[team_b.id].status is InvitationStatus.ACCEPTED
    assert await service.list_invitations(alice) == []


# ============ Suggestions ============


async def test_leader_gets_member_suggestions(service, profiles, leader):
    suggestions = await service.suggest(leader, "backend", ["Node.js", "PostgreSQL"])

    ids = [s.candidate_id for s in suggestions]
    assert ids[0] == "bob"
    assert suggestions[0].score == 70
    assert "lead-a" not in ids and "lead-b" not in ids


async def test_member_gets_leader_suggestions(service, profiles, bob):
    suggestions = await service.suggest(bob, "backend", ["Go"])

    assert [s.candidate_id for s in suggestions] == ["lead-b", "lead-a"]
    assert suggestions[0].score == 60


async def test_suggest_requires_skills(service, profiles, leader):
    with pytest.raises(ValidationError) as exc_info:
        await service.suggest(leader, "backend", [])
    assert exc_info.value.reason is ErrorReason.EMPTY_SKILLS


async def test_suggest_requires_position(service, profiles, leader):
    with pytest.raises(ValidationError) as exc_info:
        await service.suggest(leader, None, ["Go"])
    assert exc_info.value.reason is ErrorReason.MISSING_FIELD


async def test_suggest_for_slot(service, team_a, leader):
    suggestions = await service.suggest_for_slot(leader, team_a.id, team_a.slots[0].id)
    assert suggestions[0].candidate_id == "bob"


async def test_suggest_with_empty_pool(service, leader):
    # No profiles registered at all
    assert await service.suggest(leader, "design", ["Figma"]) == []
