"""
LLM-based candidate scoring over an OpenAI-compatible chat API.
"""

import asyncio
import json
import re
from typing import Optional, Sequence

from loguru import logger
from openai import AsyncOpenAI
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from shared.config import Settings, get_settings
from shared.errors import UpstreamError
from shared.models import Profile, SlotRequirement, Suggestion

from .scoring import DEFAULT_TOP_K, ScoringStrategy, rank_suggestions, round_half_up

JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")


class ScoredEntry(BaseModel):
    """One element of the JSON array the model must return."""

    candidate_id: str = Field(..., alias="candidateId")
    score: float = Field(..., allow_inf_nan=False)
    matched_skills: list[str] = Field(default_factory=list, alias="matchedSkills")
    reason: str = ""


def build_prompt(
    requirement: SlotRequirement,
    pool: Sequence[Profile],
    looking_as_leader: bool,
) -> str:
    """Describe the requirement and the enumerated candidates with their ids."""
    audience = (
        "A team leader is looking for members"
        if looking_as_leader
        else "A member is looking for teams/leaders"
    )
    candidates = "\n".join(
        f"{i}. Name: {c.name}, Position: {c.position.value}, Skills: {', '.join(c.skills)}"
        for i, c in enumerate(pool, start=1)
    )
    ids = "\n".join(f"- {c.name}: {c.id}" for c in pool)

    return f"""You are a team matching AI for a hackathon. Score each candidate from 0-100 based on skill match.

{audience}.

Required Position: {requirement.position.value}
Required Skills: {', '.join(requirement.skills)}

Candidates:
{candidates}

Score based on:
1. Position match (must match for high score)
2. Skill overlap (more matching skills = higher score)
3. Complementary skills (bonus for useful related skills)

Return ONLY a valid JSON array, no other text:
[{{"candidateId": "id", "score": 85, "matchedSkills": ["skill1", "skill2"], "reason": "Brief reason"}}]

Use the actual candidate IDs from this list:
{ids}"""


def parse_response(content: Optional[str]) -> list[ScoredEntry]:
    """
    Extract and validate the JSON array from free-form model output.

    Raises:
        UpstreamError: if there is no array, it is not valid JSON, or any
            entry does not have the expected shape.
    """
    if not content:
        raise UpstreamError("Empty response from LLM")

    match = JSON_ARRAY_PATTERN.search(content)
    if not match:
        raise UpstreamError("No JSON array found in LLM response")

    try:
        raw = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise UpstreamError(f"JSON parse error: {e}") from e

    if not isinstance(raw, list):
        raise UpstreamError("LLM response is not a JSON array")

    try:
        return [ScoredEntry.model_validate(item) for item in raw]
    except PydanticValidationError as e:
        raise UpstreamError(f"Malformed suggestion entry: {e}") from e


class LLMScorer(ScoringStrategy):
    """Scores candidates by asking a language model."""

    name = "llm"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
        top_k: int = DEFAULT_TOP_K,
    ):
        self.settings = settings or get_settings()
        self._client = client
        self.top_k = top_k

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.llm_api_key.get_secret_value(),
                base_url=self.settings.llm_base_url,
                max_retries=0,
            )
        return self._client

    async def _complete(self, prompt: str) -> Optional[str]:
        response = await self.client.chat.completions.create(
            model=self.settings.llm_model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.settings.matcher_temperature,
            max_tokens=self.settings.matcher_max_tokens,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content

    async def score(
        self,
        requirement: SlotRequirement,
        pool: Sequence[Profile],
        looking_as_leader: bool,
    ) -> list[Suggestion]:
        """
        Score the pool with the LLM.

        Returns:
            Top suggestions, sorted by descending score

        Raises:
            UpstreamError: on timeout, transport failure or unusable output
        """
        if not pool:
            return []

        prompt = build_prompt(requirement, pool, looking_as_leader)
        try:
            content = await asyncio.wait_for(
                self._complete(prompt),
                timeout=self.settings.matcher_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamError(
                f"LLM did not answer within {self.settings.matcher_timeout_seconds}s"
            ) from e
        except Exception as e:
            raise UpstreamError(f"LLM request failed: {e}") from e

        entries = parse_response(content)
        by_id = {c.id: c for c in pool}

        suggestions = []
        for entry in entries:
            candidate = by_id.get(entry.candidate_id)
            if candidate is None:
                logger.debug(f"Dropping suggestion for unknown candidate {entry.candidate_id}")
                continue

            score = round_half_up(entry.score)
            if not 0 <= score <= 100:
                logger.warning(f"Invalid score {score}, clamping to range 0-100")
                score = max(0, min(100, score))

            suggestions.append(
                Suggestion(
                    candidate_id=candidate.id,
                    candidate=candidate,
                    score=score,
                    matched_skills=entry.matched_skills,
                    reason=entry.reason,
                )
            )

        logger.info(
            f"LLM scored {len(suggestions)}/{len(pool)} candidates "
            f"for {requirement.position.value}"
        )
        return rank_suggestions(suggestions, self.top_k)
