"""
Ranking oracle - optional LLM-backed ranking, tagging and scheduling.

The matching engine treats every oracle call as disposable: implementations
raise ``OracleUnavailableError`` on any failure and the engine falls back to
its deterministic answer.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI

from link_app.config import Settings
from link_app.features.coordination.domain import (
    MutualSlotSuggestion,
    OracleUnavailableError,
    UserAvailabilityWindow,
)
from link_app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class RankingContext:
    """What to rank: a subject profile and the candidates to order for it."""

    kind: str  # "users_for_user", "users_for_event" or "events_for_user"
    subject: dict[str, Any]
    candidates: list[dict[str, Any]] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class RankedCandidate:
    id: int
    score: float
    reason: str | None = None


class RankingOracle(Protocol):
    async def rank_compatibility(self, context: RankingContext) -> list[RankedCandidate]: ...

    async def suggest_tags(self, title: str, description: str, event_type: str) -> list[str]: ...

    async def suggest_mutual_slot(
        self, availabilities: list[UserAvailabilityWindow]
    ) -> MutualSlotSuggestion: ...


RANKING_SYSTEM_MESSAGES = {
    "users_for_user": (
        "You are a matching expert helping to connect users based on compatibility. "
        "Return JSON only."
    ),
    "users_for_event": (
        "You are a matching expert selecting attendees who would enjoy and contribute "
        "to an event. Return JSON only."
    ),
    "events_for_user": "You are an event recommendation system. Return JSON only.",
}


class OpenAIRankingOracle:
    """
    OpenAI chat-completions oracle using JSON response format.

    No retries: the matching engine bounds each call with a timeout and has a
    deterministic answer ready, so a failed call is simply reported.
    """

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None):
        self.settings = settings
        if client is None:
            if not settings.OPENAI_API_KEY:
                raise OracleUnavailableError("OPENAI_API_KEY not configured in settings")
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.ORACLE_TIMEOUT_SECONDS,
                max_retries=0,
            )
        self.client = client
        logger.info(
            "OpenAI ranking oracle initialized",
            model=settings.OPENAI_MODEL,
            timeout=settings.ORACLE_TIMEOUT_SECONDS,
        )

    async def _complete_json(
        self, system_message: str, user_message: str, temperature: float
    ) -> dict:
        try:
            response = await self.client.chat.completions.create(
                model=self.settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": system_message},
                    {"role": "user", "content": user_message},
                ],
                max_tokens=self.settings.OPENAI_MAX_TOKENS,
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except openai.RateLimitError as e:
            raise OracleUnavailableError("OpenAI rate limit hit", api_error=str(e)) from e
        except openai.APITimeoutError as e:
            raise OracleUnavailableError("OpenAI API timeout", api_error=str(e)) from e
        except openai.APIError as e:
            raise OracleUnavailableError("OpenAI API error", api_error=str(e)) from e

        if not response.choices or not response.choices[0].message.content:
            raise OracleUnavailableError("Empty response from OpenAI API")

        raw = response.choices[0].message.content.strip()
        try:
            result = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("OpenAI returned invalid JSON", raw_result=raw[:200])
            raise OracleUnavailableError("OpenAI returned invalid JSON") from e

        if not isinstance(result, dict):
            raise OracleUnavailableError("OpenAI returned a non-object JSON payload")

        logger.debug(
            "OpenAI oracle call successful",
            response_length=len(raw),
            usage_tokens=response.usage.total_tokens if response.usage else 0,
        )
        return result

    async def rank_compatibility(self, context: RankingContext) -> list[RankedCandidate]:
        system_message = RANKING_SYSTEM_MESSAGES.get(context.kind)
        if system_message is None:
            raise OracleUnavailableError(f"Unsupported ranking kind: {context.kind}")

        user_message = (
            f"Given this subject: {json.dumps(context.subject, default=list)}\n"
            "rank the following candidates by score from 0 to 1.0. Each candidate has an "
            "'id'. Respond with an object {\"rankings\": [{\"id\": number, \"score\": number, "
            "\"reason\": string}]} sorted by score descending.\n"
            f"Candidates: {json.dumps(context.candidates, default=list)}"
        )
        result = await self._complete_json(system_message, user_message, temperature=0.3)
        return self._parse_rankings(result)

    def _parse_rankings(self, result: dict) -> list[RankedCandidate]:
        rows = result.get("rankings")
        if not isinstance(rows, list):
            raise OracleUnavailableError("Oracle response missing 'rankings' list")

        ranked = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                ranked.append(
                    RankedCandidate(
                        id=int(row["id"]),
                        score=float(row["score"]),
                        reason=row.get("reason"),
                    )
                )
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed oracle ranking row", row=str(row)[:100])
        ranked.sort(key=lambda r: r.score, reverse=True)
        return ranked

    async def suggest_tags(self, title: str, description: str, event_type: str) -> list[str]:
        user_message = (
            "Given the following event, generate relevant tags that would help match it with "
            "interested users. Respond with an object {\"tags\": [string]} containing 3-7 short, "
            "concise tags.\n"
            f"Title: {title}\nDescription: {description}\nType: {event_type}"
        )
        result = await self._complete_json(
            "You are a tagging system for events. Return JSON only.", user_message, temperature=0.3
        )
        tags = result.get("tags")
        if not isinstance(tags, list):
            raise OracleUnavailableError("Oracle response missing 'tags' list")
        return [t for t in tags if isinstance(t, str)]

    async def suggest_mutual_slot(
        self, availabilities: list[UserAvailabilityWindow]
    ) -> MutualSlotSuggestion:
        payload = [
            {"userId": a.user_id, "dates": list(a.dates), "timeSlots": list(a.time_slots)}
            for a in availabilities
        ]
        user_message = (
            "Given the following user availabilities, find the best date and time slot that "
            "would work for most or all users. Respond with an object with 'date' (YYYY-MM-DD), "
            "'timeSlot' and 'coverage' (fraction of users it works for).\n"
            f"User availabilities: {json.dumps(payload)}"
        )
        result = await self._complete_json(
            "You are a scheduling assistant helping to find the best mutual time for a group. "
            "Return JSON only.",
            user_message,
            temperature=0.2,
        )
        slot_date, time_slot = result.get("date"), result.get("timeSlot")
        if not isinstance(slot_date, str) or not isinstance(time_slot, str):
            raise OracleUnavailableError("Oracle response missing 'date'/'timeSlot'")
        return MutualSlotSuggestion(date=slot_date, time_slot=time_slot, source="oracle")


def build_ranking_oracle(settings: Settings) -> RankingOracle | None:
    """Return the OpenAI oracle when configured, otherwise None (deterministic only)."""
    if not settings.oracle_configured():
        logger.info("Ranking oracle disabled; deterministic matching only")
        return None
    return OpenAIRankingOracle(settings)
