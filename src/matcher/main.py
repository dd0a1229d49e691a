"""
Matcher Service - Main entry point.
Ranks a YAML candidate pool against a position and skill list.
"""

import asyncio
from pathlib import Path
from typing import Optional

import click
from loguru import logger

from shared.config import get_settings
from shared.errors import TeamFormationError
from shared.log import setup_logging
from shared.models import Position, SlotRequirement, Suggestion

from .pool_loader import PoolLoader
from .scoring import FallbackScorer
from .service import Matcher


async def rank_pool(
    pool_path: Path,
    position: Position,
    skills: list[str],
    as_leader: bool = True,
    requester_id: Optional[str] = None,
    use_llm: bool = True,
) -> list[Suggestion]:
    """
    Rank candidates from a pool file.

    Args:
        pool_path: YAML file with candidate profiles
        position: Required position
        skills: Required skills
        as_leader: Leader looking for members (True) or member looking for leaders
        requester_id: Profile id to exclude from the pool
        use_llm: Allow the LLM scorer when configured

    Returns:
        Ranked suggestions
    """
    settings = get_settings()

    loader = PoolLoader(pool_path)
    pool = loader.pool_for(requester_id, looking_as_leader=as_leader)
    logger.info(f"Ranking {len(pool)} candidates for {position.value}")

    if use_llm:
        matcher = Matcher.from_settings(settings)
    else:
        matcher = Matcher(fallback=FallbackScorer(top_k=settings.matcher_top_k))

    requirement = SlotRequirement(position=position, skills=skills)
    return await matcher.rank(requirement, pool, looking_as_leader=as_leader)


@click.command()
@click.option(
    "--pool",
    "-p",
    "pool_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="YAML file with candidate profiles",
)
@click.option(
    "--position",
    type=click.Choice([p.value for p in Position]),
    required=True,
    help="Required position",
)
@click.option(
    "--skill",
    "-s",
    "skills",
    multiple=True,
    help="Required skill (repeatable)",
)
@click.option(
    "--as-member",
    is_flag=True,
    help="Rank leaders for a member instead of members for a leader",
)
@click.option(
    "--requester",
    "-r",
    default=None,
    help="Profile id of the requester, excluded from the pool",
)
@click.option(
    "--no-llm",
    is_flag=True,
    help="Use the deterministic scorer only",
)
def main(
    pool_path: Path,
    position: str,
    skills: tuple[str, ...],
    as_member: bool,
    requester: Optional[str],
    no_llm: bool,
):
    """Candidate Matcher - Ranks candidates for a team slot."""
    setup_logging()

    try:
        suggestions = asyncio.run(
            rank_pool(
                pool_path=pool_path,
                position=Position(position),
                skills=list(skills),
                as_leader=not as_member,
                requester_id=requester,
                use_llm=not no_llm,
            )
        )
    except TeamFormationError as e:
        raise click.ClickException(f"{e.reason.value}: {e.message}")

    if not suggestions:
        click.echo("No candidates found")
        return

    for rank, s in enumerate(suggestions, start=1):
        skills_str = ", ".join(s.matched_skills) or "-"
        click.echo(
            f"{rank}. {s.candidate.name} ({s.candidate.position.value}) "
            f"score={s.score} matched=[{skills_str}] - {s.reason}"
        )


if __name__ == "__main__":
    main()
