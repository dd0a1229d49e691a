"""
Deterministic scorer: the reference for scoring semantics.
"""

import pytest

from matcher.scoring import FallbackScorer, ScoringWeights, round_half_up
from shared.models import Position, SlotRequirement

from tests.conftest import make_profile


@pytest.fixture
def scorer() -> FallbackScorer:
    return FallbackScorer()


def backend_requirement() -> SlotRequirement:
    return SlotRequirement(position=Position.BACKEND, skills=["Node.js", "PostgreSQL"])


def test_backend_scenario(scorer):
    pool = [
        make_profile("c2", Position.FRONTEND, ["Node.js"]),
        make_profile("c1", Position.BACKEND, ["Node.js", "PostgreSQL", "GraphQL"]),
    ]

    ranked = scorer.rank(backend_requirement(), pool)

    assert [s.candidate_id for s in ranked] == ["c1", "c2"]
    # 50 for the position, 2 * min(10, 50 / 2) for the skills
    assert ranked[0].score == 70
    assert ranked[0].matched_skills == ["Node.js", "PostgreSQL"]
    assert ranked[0].reason == "Position: Match. Skills: 2/2 match."
    assert ranked[1].score == 10
    assert ranked[1].matched_skills == ["Node.js"]
    assert ranked[1].reason == "Position: Different. Skills: 1/2 match."


def test_no_overlap_scores_zero(scorer):
    suggestion = scorer.score_candidate(
        backend_requirement(), make_profile("x", Position.DESIGN, ["Figma"])
    )
    assert suggestion.score == 0
    assert suggestion.matched_skills == []


def test_skill_subtotal_is_capped(scorer):
    requirement = SlotRequirement(position=Position.FRONTEND, skills=["script"])
    candidate = make_profile(
        "poly",
        Position.FRONTEND,
        ["JavaScript", "TypeScript", "CoffeeScript", "AppleScript", "ActionScript", "PostScript"],
    )

    suggestion = scorer.score_candidate(requirement, candidate)

    # Six matches at 10 points would be 60; the skill budget is 50
    assert suggestion.score == 100
    assert len(suggestion.matched_skills) == 6


def test_per_skill_points_saturate_at_ten(scorer):
    assert scorer.per_skill_points(1) == 10
    assert scorer.per_skill_points(5) == 10
    assert scorer.per_skill_points(10) == 5
    assert scorer.per_skill_points(0) == 0


def test_score_rounds_half_up(scorer):
    # 50 / 8 = 6.25 points per skill, two matches = 12.5
    requirement = SlotRequirement(
        position=Position.BACKEND,
        skills=["Go", "Rust", "Java", "Kotlin", "Scala", "Elixir", "Haskell", "OCaml"],
    )
    candidate = make_profile("dev", Position.FRONTEND, ["Rust", "Kotlin"])

    assert scorer.score_candidate(requirement, candidate).score == 13


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(0.49) == 0
    assert round_half_up(99.5) == 100


def test_result_sorted_and_truncated(scorer):
    pool = [
        make_profile(f"c{i}", Position.BACKEND if i % 2 else Position.FRONTEND, ["Node.js"] * (i % 3))
        for i in range(9)
    ]

    ranked = scorer.rank(backend_requirement(), pool)

    assert len(ranked) == 5
    scores = [s.score for s in ranked]
    assert scores == sorted(scores, reverse=True)


def test_ties_keep_pool_order(scorer):
    pool = [make_profile(name, Position.BACKEND, ["Node.js"]) for name in ("a", "b", "c")]
    assert [s.candidate_id for s in scorer.rank(backend_requirement(), pool)] == ["a", "b", "c"]


def test_empty_pool_ranks_nothing(scorer):
    assert scorer.rank(backend_requirement(), []) == []


@pytest.mark.parametrize(
    "skills",
    [
        ["Node.js"],
        ["Node.js", "PostgreSQL"],
        ["Node.js", "PostgreSQL", "Redis", "Kafka", "Docker", "AWS", "Terraform"],
    ],
)
def test_position_match_never_scores_lower(scorer, skills):
    requirement = SlotRequirement(position=Position.BACKEND, skills=skills)
    matching = make_profile("m", Position.BACKEND, list(skills))
    other = make_profile("o", Position.FRONTEND, list(skills))

    with_position = scorer.score_candidate(requirement, matching).score
    without_position = scorer.score_candidate(requirement, other).score

    assert with_position >= without_position
    assert 0 <= without_position <= with_position <= 100


def test_custom_weights():
    scorer = FallbackScorer(ScoringWeights(position_points=20, skill_budget=80, max_points_per_skill=40))
    suggestion = scorer.score_candidate(
        backend_requirement(), make_profile("c", Position.BACKEND, ["Node.js", "PostgreSQL"])
    )
    assert suggestion.score == 100


async def test_score_is_the_async_strategy_interface(scorer):
    pool = [make_profile("c1", Position.BACKEND, ["Node.js"])]
    ranked = await scorer.score(backend_requirement(), pool, looking_as_leader=True)
    assert ranked == scorer.rank(backend_requirement(), pool)
