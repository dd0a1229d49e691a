"""
Matcher facade: validates a query, runs the primary strategy and
substitutes the deterministic scorer when the primary one fails.
"""

from typing import Optional, Sequence

from loguru import logger

from shared.config import Settings, get_settings
from shared.errors import ErrorReason, UpstreamError, ValidationError
from shared.models import Profile, SlotRequirement, Suggestion

from .llm_matcher import LLMScorer
from .scoring import FallbackScorer, ScoringStrategy
from .skills import clean_skills


class Matcher:
    """Ranks a caller-filtered candidate pool against a slot requirement."""

    def __init__(
        self,
        primary: Optional[ScoringStrategy] = None,
        fallback: Optional[FallbackScorer] = None,
    ):
        self.fallback = fallback or FallbackScorer()
        self.primary = primary

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Matcher":
        """Use the LLM scorer only when it is enabled and has an API key."""
        settings = settings or get_settings()
        top_k = settings.matcher_top_k
        primary = LLMScorer(settings, top_k=top_k) if settings.llm_enabled else None
        return cls(primary=primary, fallback=FallbackScorer(top_k=top_k))

    async def rank(
        self,
        requirement: SlotRequirement,
        pool: Sequence[Profile],
        looking_as_leader: bool,
    ) -> list[Suggestion]:
        """
        Rank candidates for a requirement.

        The pool must already exclude the requester and wrong-role users.

        Raises:
            ValidationError: if the requirement lists no skills
        """
        skills = clean_skills(requirement.skills)
        if not skills:
            raise ValidationError(
                "At least one required skill is needed", ErrorReason.EMPTY_SKILLS
            )
        requirement = requirement.model_copy(update={"skills": skills})

        if not pool:
            return []

        if self.primary is not None:
            try:
                return await self.primary.score(requirement, pool, looking_as_leader)
            except UpstreamError as e:
                logger.warning(f"{self.primary.name} scoring failed, using fallback: {e.message}")

        return await self.fallback.score(requirement, pool, looking_as_leader)
