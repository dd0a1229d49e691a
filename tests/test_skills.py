import pytest

from matcher.skills import clean_skills, matched_skills, normalize_skill, skills_overlap


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("React", "react"),
        ("  Node.js ", "node.js"),
        ("POSTGRESQL", "postgresql"),
        ("Straße", "strasse"),
    ],
)
def test_normalize_skill(raw, expected):
    assert normalize_skill(raw) == expected


@pytest.mark.parametrize(
    "candidate, required, expected",
    [
        ("React", "react", True),
        ("React Native", "React", True),  # candidate contains required
        ("SQL", "PostgreSQL", True),  # required contains candidate
        ("Vue", "React", False),
        ("", "React", False),
        ("React", "   ", False),
    ],
)
def test_skills_overlap(candidate, required, expected):
    assert skills_overlap(candidate, required) is expected


def test_matched_skills_keeps_candidate_spelling_and_order():
    result = matched_skills(
        ["GraphQL", "postgresql", "Node.JS"],
        ["Node.js", "PostgreSQL"],
    )
    assert result == ["postgresql", "Node.JS"]


def test_matched_skills_counts_duplicates_once():
    assert matched_skills(["React", "react ", "REACT"], ["React"]) == ["React"]


def test_matched_skills_ignores_blank_requirements():
    assert matched_skills(["React"], ["", "  "]) == []


def test_clean_skills_drops_blanks():
    assert clean_skills([" React ", "", "  ", "Go"]) == ["React", "Go"]
    assert clean_skills(None) == []
