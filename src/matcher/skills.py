"""
Free-text skill comparison.

Skills are matched case-insensitively, and a candidate skill matches a
required one when either contains the other ("react" matches "React Native").
"""

from typing import Iterable, Optional


def normalize_skill(skill: str) -> str:
    """Canonical form used for comparison."""
    return skill.strip().casefold()


def clean_skills(skills: Optional[Iterable[str]]) -> list[str]:
    """Strip whitespace and drop blank entries, keeping order."""
    return [s.strip() for s in skills or [] if s and s.strip()]


def skills_overlap(candidate_skill: str, required_skill: str) -> bool:
    """True if either skill contains the other after normalization."""
    a = normalize_skill(candidate_skill)
    b = normalize_skill(required_skill)
    if not a or not b:
        return False
    return a in b or b in a


def matches_any(candidate_skill: str, required_skills: Iterable[str]) -> bool:
    return any(skills_overlap(candidate_skill, req) for req in required_skills)


def matched_skills(
    candidate_skills: Iterable[str], required_skills: Iterable[str]
) -> list[str]:
    """
    Candidate skills that overlap any required skill.

    Keeps the candidate's spelling and order; duplicates (after
    normalization) are counted once.
    """
    required = [s for s in required_skills if normalize_skill(s)]
    seen: set[str] = set()
    matched = []
    for skill in candidate_skills:
        key = normalize_skill(skill)
        if key in seen:
            continue
        if matches_any(skill, required):
            seen.add(key)
            matched.append(skill)
    return matched
