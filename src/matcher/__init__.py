"""
Matcher Service - ranks candidates against a slot requirement.

An LLM scorer is used when configured; the deterministic fallback scorer
takes over whenever the LLM cannot produce usable output.
"""

from .llm_matcher import LLMScorer
from .pool_loader import PoolLoader
from .scoring import FallbackScorer, ScoringStrategy, ScoringWeights
from .service import Matcher
from .skills import matched_skills, normalize_skill, skills_overlap

__all__ = [
    "FallbackScorer",
    "LLMScorer",
    "Matcher",
    "PoolLoader",
    "ScoringStrategy",
    "ScoringWeights",
    "matched_skills",
    "normalize_skill",
    "skills_overlap",
]
