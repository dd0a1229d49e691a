"""
Shared fixtures. No network and no MongoDB: everything runs on the
in-memory repository and a fake OpenAI client.
"""

import asyncio
from types import SimpleNamespace
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import SecretStr

from matcher.service import Matcher
from roster.service import TeamService
from shared.config import Settings
from shared.database import InMemoryRepository
from shared.models import Caller, Position, Profile, Role


def make_profile(
    profile_id: str,
    position: Position,
    skills: list[str],
    role: Role = Role.MEMBER,
    name: Optional[str] = None,
) -> Profile:
    return Profile(
        id=profile_id,
        name=name or profile_id.title(),
        role=role,
        position=position,
        skills=skills,
    )


def make_llm_client(
    content: Optional[str] = None,
    exc: Optional[BaseException] = None,
    delay: float = 0.0,
) -> Any:
    """Fake AsyncOpenAI whose chat completion returns ``content``."""

    async def create(**kwargs):
        if delay:
            await asyncio.sleep(delay)
        if exc is not None:
            raise exc
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=create)
    return client


@pytest.fixture
def settings() -> Settings:
    return Settings(
        llm_api_key=SecretStr(""),
        matcher_timeout_seconds=0.5,
        _env_file=None,
    )


@pytest.fixture
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def service(repo, settings) -> TeamService:
    return TeamService(repo, matcher=Matcher(), settings=settings)


@pytest.fixture
def leader() -> Caller:
    return Caller(subject_id="lead-a", role=Role.LEADER)


@pytest.fixture
def other_leader() -> Caller:
    return Caller(subject_id="lead-b", role=Role.LEADER)


@pytest.fixture
def alice() -> Caller:
    return Caller(subject_id="alice", role=Role.MEMBER)


@pytest.fixture
def bob() -> Caller:
    return Caller(subject_id="bob", role=Role.MEMBER)


@pytest.fixture
async def profiles(service) -> dict[str, Profile]:
    seeded = [
        make_profile("lead-a", Position.BUSINESS, ["Leadership"], role=Role.LEADER),
        make_profile("lead-b", Position.BACKEND, ["Go", "Kubernetes"], role=Role.LEADER),
        make_profile("alice", Position.FRONTEND, ["React", "TypeScript"]),
        make_profile("bob", Position.BACKEND, ["Node.js", "PostgreSQL", "GraphQL"]),
        make_profile("carol", Position.DESIGN, ["Figma", "UI/UX"]),
    ]
    for profile in seeded:
        await service.register_profile(profile)
    return {p.id: p for p in seeded}


@pytest.fixture
async def team_a(service, profiles, leader):
    team = await service.create_team(leader, "Team A")
    team = await service.add_slot(leader, team.id, "backend", ["Node.js", "PostgreSQL"])
    return team


@pytest.fixture
async def team_b(service, profiles, other_leader):
    team = await service.create_team(other_leader, "Team B")
    team = await service.add_slot(other_leader, team.id, "backend", ["Node.js"])
    return team
