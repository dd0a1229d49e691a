"""
Candidate pool loader for the matcher CLI.
Loads profiles from a YAML file.

Expected layout::

    candidates:
      - id: bob
        name: Bob Backend
        role: member
        position: backend
        skills: [Node.js, PostgreSQL]
"""

from pathlib import Path
from typing import Optional

import yaml
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from shared.models import Profile, Role


class PoolLoader:
    """Loads and filters candidate profiles."""

    def __init__(self, pool_path: Optional[Path] = None):
        self.pool_path = pool_path
        self._profiles: Optional[list[Profile]] = None

    def load(self, path: Optional[Path] = None) -> list[Profile]:
        """Load profiles from YAML. Invalid entries are skipped with a warning."""
        path = path or self.pool_path
        if not path:
            raise ValueError("No pool path specified")

        if not path.exists():
            raise FileNotFoundError(f"Pool file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        entries = data.get("candidates", []) if isinstance(data, dict) else data
        profiles = []
        for i, entry in enumerate(entries or []):
            try:
                profiles.append(Profile.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(f"Skipping candidate #{i} in {path}: {e.error_count()} errors")

        logger.info(f"Loaded {len(profiles)} candidates from {path}")
        self._profiles = profiles
        return profiles

    @property
    def profiles(self) -> list[Profile]:
        """Get loaded profiles, loading if necessary."""
        if self._profiles is None:
            return self.load()
        return self._profiles

    def pool_for(self, requester_id: Optional[str], looking_as_leader: bool) -> list[Profile]:
        """Opposite-role candidates, excluding the requester."""
        target = Role.MEMBER if looking_as_leader else Role.LEADER
        return [
            p for p in self.profiles if p.role == target and p.id != requester_id
        ]
