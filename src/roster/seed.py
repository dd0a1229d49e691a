"""
Demo profiles for local runs.
"""

from loguru import logger

from shared.errors import ConflictError
from shared.models import Position, Profile, Role

from .service import TeamService

DEMO_PROFILES: list[Profile] = [
    Profile(
        id="demo-leader",
        name="Demo Leader",
        email="leader@demo.com",
        role=Role.LEADER,
        position=Position.BUSINESS,
        skills=["Leadership", "Project Management", "Agile"],
    ),
    Profile(
        id="demo-alice",
        name="Alice Frontend",
        email="alice@demo.com",
        role=Role.MEMBER,
        position=Position.FRONTEND,
        skills=["React", "TypeScript", "Tailwind", "Redux"],
    ),
    Profile(
        id="demo-bob",
        name="Bob Backend",
        email="bob@demo.com",
        role=Role.MEMBER,
        position=Position.BACKEND,
        skills=["Node.js", "Express", "PostgreSQL", "GraphQL"],
    ),
    Profile(
        id="demo-carol",
        name="Carol Designer",
        email="carol@demo.com",
        role=Role.MEMBER,
        position=Position.DESIGN,
        skills=["UI/UX", "Figma", "Sketch"],
    ),
]

# Slots the demo leader opens
DEMO_SLOTS: list[tuple[Position, list[str]]] = [
    (Position.FRONTEND, ["React", "TypeScript"]),
    (Position.BACKEND, ["Node.js", "PostgreSQL"]),
    (Position.DESIGN, ["Figma", "UI/UX"]),
]


async def seed_demo_profiles(service: TeamService) -> tuple[int, int]:
    """
    Register the demo profiles, skipping ones that already exist.

    Returns:
        Tuple of (created, skipped)
    """
    created = 0
    skipped = 0
    for profile in DEMO_PROFILES:
        try:
            await service.register_profile(profile)
            created += 1
        except ConflictError:
            logger.info(f"Skipped: {profile.name} ({profile.email}) - already exists")
            skipped += 1

    logger.info(f"Demo seeding complete: {created} created, {skipped} skipped")
    return created, skipped
