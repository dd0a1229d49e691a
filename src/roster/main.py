"""
Roster Service - Main entry point.
Seeds demo data and runs the team formation demo flow.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import click
from loguru import logger

from shared.database import InMemoryRepository, MongoRepository, Repository
from shared.errors import TeamFormationError
from shared.log import setup_logging
from shared.models import Caller, Role, Team

from .seed import DEMO_PROFILES, DEMO_SLOTS, seed_demo_profiles
from .service import TeamService


@asynccontextmanager
async def open_repository(memory: bool) -> AsyncIterator[Repository]:
    """Yield a connected repository, closing it afterwards."""
    if memory:
        yield InMemoryRepository()
        return

    db = MongoRepository()
    await db.connect()
    try:
        await db.ensure_indexes()
        yield db
    finally:
        await db.disconnect()


def format_team(team: Team) -> str:
    lines = [f"{team.name} ({team.id}) - leader {team.leader_id}"]
    for slot in team.slots:
        who = slot.candidate_id or "-"
        lines.append(
            f"  [{slot.state.value:<10}] {slot.position.value:<8} "
            f"{', '.join(slot.skills) or '-'} -> {who}"
        )
    return "\n".join(lines)


async def run_demo(service: TeamService) -> Team:
    """
    Walk the full flow: seed, open slots, rank, invite, accept.

    Returns:
        The demo leader's team after every invitation was answered
    """
    await seed_demo_profiles(service)

    leader = next(p for p in DEMO_PROFILES if p.role is Role.LEADER)
    leader_caller = Caller(subject_id=leader.id, role=Role.LEADER)

    team = await service.get_team_for_leader(leader_caller)
    if team is None:
        team = await service.create_team(leader_caller, "Demo Team")

    for position, skills in DEMO_SLOTS:
        team = await service.add_slot(leader_caller, team.id, position, skills)

    for slot in team.slots:
        if slot.candidate_id is not None:
            continue

        suggestions = await service.suggest_for_slot(leader_caller, team.id, slot.id)
        if not suggestions:
            logger.warning(f"No suggestions for {slot.position.value} slot {slot.id}")
            continue

        best = suggestions[0]
        logger.info(
            f"Best match for {slot.position.value}: {best.candidate.name} "
            f"(score: {best.score}) - {best.reason}"
        )
        try:
            await service.assign(leader_caller, team.id, slot.id, best.candidate_id)
            member = Caller(subject_id=best.candidate_id, role=Role.MEMBER)
            await service.accept(member, team.id, slot.id)
        except TeamFormationError as e:
            logger.warning(f"Could not fill slot {slot.id}: {e.reason.value} - {e.message}")

    return await service.get_team(team.id)


@click.group()
def cli():
    """Roster - Hackathon team formation."""
    setup_logging()


@cli.command()
@click.option("--memory", is_flag=True, help="Use an in-memory store instead of MongoDB")
def seed(memory: bool):
    """Register the demo profiles."""

    async def _run() -> tuple[int, int]:
        async with open_repository(memory) as repo:
            return await seed_demo_profiles(TeamService(repo))

    created, skipped = asyncio.run(_run())
    click.echo(f"Created: {created}, Skipped: {skipped}")


@cli.command()
def teams():
    """List teams and the state of their slots."""

    async def _run() -> list[Team]:
        async with open_repository(memory=False) as repo:
            return await TeamService(repo).list_teams()

    all_teams = asyncio.run(_run())
    if not all_teams:
        click.echo("No teams")
    for team in all_teams:
        click.echo(format_team(team))


@cli.command("ensure-indexes")
def ensure_indexes():
    """Create MongoDB indexes, including the unique membership key."""

    async def _run() -> None:
        async with open_repository(memory=False):
            pass

    asyncio.run(_run())
    click.echo("Indexes created")


@cli.command()
@click.option("--mongo", is_flag=True, help="Run against MongoDB instead of memory")
def demo(mongo: bool):
    """Form the demo team end to end."""

    async def _run() -> Team:
        async with open_repository(memory=not mongo) as repo:
            return await run_demo(TeamService(repo))

    click.echo(format_team(asyncio.run(_run())))


if __name__ == "__main__":
    cli()
