"""
Scoring strategies for ranking candidates against a slot requirement.

``FallbackScorer`` is deterministic and is the reference for scoring
semantics. ``LLMScorer`` (see ``llm_matcher``) delegates to a language
model and falls back to this one when it cannot be used.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from shared.models import Profile, SlotRequirement, Suggestion

from .skills import matched_skills

DEFAULT_TOP_K = 5


@dataclass
class ScoringWeights:
    """Point budget of the deterministic scorer."""

    position_points: int = 50
    skill_budget: int = 50
    max_points_per_skill: int = 10


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rank_suggestions(suggestions: list[Suggestion], top_k: int) -> list[Suggestion]:
    """Sort by descending score, ties keep input order, then truncate."""
    return sorted(suggestions, key=lambda s: s.score, reverse=True)[:top_k]


class ScoringStrategy(ABC):
    """Produces ranked suggestions for a requirement over a candidate pool."""

    name = "strategy"

    @abstractmethod
    async def score(
        self,
        requirement: SlotRequirement,
        pool: Sequence[Profile],
        looking_as_leader: bool,
    ) -> list[Suggestion]:
        ...


class FallbackScorer(ScoringStrategy):
    """
    Deterministic scorer.

    A candidate earns ``position_points`` for an exact position match, and
    ``min(max_points_per_skill, skill_budget / len(required))`` for every
    one of their skills overlapping a required skill. The skill subtotal
    never exceeds ``skill_budget``, so scores stay within 0-100.
    """

    name = "fallback"

    def __init__(self, weights: Optional[ScoringWeights] = None, top_k: int = DEFAULT_TOP_K):
        self.weights = weights or ScoringWeights()
        self.top_k = top_k

    def per_skill_points(self, required_count: int) -> float:
        if required_count <= 0:
            return 0.0
        return min(
            float(self.weights.max_points_per_skill),
            self.weights.skill_budget / required_count,
        )

    def score_candidate(
        self, requirement: SlotRequirement, candidate: Profile
    ) -> Suggestion:
        """Score a single candidate."""
        required_count = len(requirement.skills)
        position_match = candidate.position == requirement.position
        matched = matched_skills(candidate.skills, requirement.skills)

        skill_points = min(
            float(self.weights.skill_budget),
            len(matched) * self.per_skill_points(required_count),
        )
        total = (self.weights.position_points if position_match else 0) + skill_points
        score = max(0, min(100, round_half_up(total)))

        reason = (
            f"Position: {'Match' if position_match else 'Different'}. "
            f"Skills: {len(matched)}/{required_count} match."
        )
        return Suggestion(
            candidate_id=candidate.id,
            candidate=candidate,
            score=score,
            matched_skills=matched,
            reason=reason,
        )

    def rank(
        self, requirement: SlotRequirement, pool: Sequence[Profile]
    ) -> list[Suggestion]:
        """Synchronous ranking over the whole pool."""
        suggestions = [self.score_candidate(requirement, c) for c in pool]
        return rank_suggestions(suggestions, self.top_k)

    async def score(
        self,
        requirement: SlotRequirement,
        pool: Sequence[Profile],
        looking_as_leader: bool,
    ) -> list[Suggestion]:
        return self.rank(requirement, pool)
