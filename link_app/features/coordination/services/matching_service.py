"""
Matching service - ranks users against events (and vice versa) from
interest/skill overlap, career alignment and distance.

The deterministic scores here are always available. When a ranking oracle
is injected it may reorder the deterministic shortlist; any oracle failure or
timeout is logged and the deterministic answer is returned in the same call.
"""

import asyncio
import math
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import TypeVar

from link_app.config import Settings
from link_app.features.coordination.domain import (
    CoordinationError,
    Event,
    GeoPoint,
    MutualSlotSuggestion,
    OracleUnavailableError,
    TimeSlot,
    User,
    UserAvailabilityWindow,
)
from link_app.infrastructure.observability.logging import get_logger

from .availability_service import normalize_date
from .geo_service import within_radius
from .oracle_service import RankedCandidate, RankingContext, RankingOracle

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TIME_SLOT = TimeSlot.EVENING.value
MAX_TAGS = 7


def _overlap_fraction(a: frozenset[str], b: frozenset[str]) -> float:
    denominator = max(len(a), len(b))
    if denominator == 0:
        return 0.0
    return len(a & b) / denominator


def _dedupe_by_id(items: Iterable[T]) -> list[T]:
    seen: dict[int, T] = {}
    for item in items:
        seen.setdefault(item.id, item)
    return list(seen.values())


def _user_profile(user: User) -> dict:
    return {
        "id": user.id,
        "interests": sorted(user.interests),
        "skills": sorted(user.skills),
        "careerPath": user.career_path,
        "profession": user.profession,
    }


def _event_profile(event: Event) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "tags": sorted(event.tags),
        "careerFocus": event.career_focus,
        "interestCategories": sorted(event.interest_categories),
        "requiredSkills": sorted(event.required_skills),
        "type": event.event_type.value,
        "category": event.category,
    }


class MatchingService:
    INTEREST_WEIGHT = 1.0
    SKILL_WEIGHT = 1.5
    CAREER_WEIGHT = 1.0

    def __init__(self, settings: Settings, oracle: RankingOracle | None = None):
        self.settings = settings
        self.oracle = oracle

    # ------------------------------------------------------------------
    # Deterministic scoring
    # ------------------------------------------------------------------

    @staticmethod
    def compatibility_score(user_a: User, user_b: User) -> int:
        """
        Pairwise compatibility in [0, 100].

        Interest overlap contributes up to 50, skill overlap up to 30, and a
        shared career path 20. Overlap is |A & B| / max(|A|, |B|).
        """
        score = _overlap_fraction(user_a.interests, user_b.interests) * 50
        score += _overlap_fraction(user_a.skills, user_b.skills) * 30
        if user_a.career_path and user_b.career_path and user_a.career_path == user_b.career_path:
            score += 20
        # Half-up rounding, not banker's rounding
        return int(math.floor(score + 0.5))

    @staticmethod
    def qualifies_for_event(user: User, event: Event) -> bool:
        """A user qualifies if they share a required skill or an interest category."""
        if not event.required_skills and not event.interest_categories:
            return True
        return bool(user.skills & event.required_skills) or bool(
            user.interests & event.interest_categories
        )

    def event_fit_score(self, user: User, event: Event) -> float:
        interest_overlap = len(user.interests & (event.interest_categories | event.tags))
        skill_overlap = len(user.skills & event.required_skills)
        score = interest_overlap * self.INTEREST_WEIGHT + skill_overlap * self.SKILL_WEIGHT
        if user.career_path and event.career_focus and user.career_path == event.career_focus:
            score += self.CAREER_WEIGHT
        return score

    # ------------------------------------------------------------------
    # Ranking operations
    # ------------------------------------------------------------------

    async def rank_users_for_event(
        self, event: Event, candidates: Iterable[User], radius_km: float | None = None
    ) -> list[User]:
        """Qualified candidates for an event, best fit first."""
        users = [u for u in _dedupe_by_id(candidates) if self.qualifies_for_event(u, event)]

        if radius_km is None and event.radius_m:
            radius_km = event.radius_m / 1000
        if radius_km is not None and event.location is not None:
            users = within_radius(event.location, radius_km, users)

        # sorted() is stable, so equal scores keep candidate order
        ranked = sorted(users, key=lambda u: self.event_fit_score(u, event), reverse=True)

        context = RankingContext(
            kind="users_for_event",
            subject=_event_profile(event),
            candidates=[_user_profile(u) for u in ranked],
        )
        return await self._rerank(
            context, ranked, self.settings.ORACLE_USER_MATCH_THRESHOLD, event_id=event.id
        )

    async def rank_events_for_user(
        self,
        user: User,
        candidates: Iterable[Event],
        radius_km: float | None = None,
        origin: GeoPoint | None = None,
    ) -> list[Event]:
        """Events a user qualifies for, best fit first."""
        events = [e for e in _dedupe_by_id(candidates) if self.qualifies_for_event(user, e)]

        center = origin or user.location
        if radius_km is not None and center is not None:
            events = within_radius(center, radius_km, events)

        ranked = sorted(events, key=lambda e: self.event_fit_score(user, e), reverse=True)

        context = RankingContext(
            kind="events_for_user",
            subject=_user_profile(user),
            candidates=[_event_profile(e) for e in ranked],
        )
        return await self._rerank(
            context, ranked, self.settings.ORACLE_EVENT_MATCH_THRESHOLD, user_id=user.id
        )

    async def rank_users_for_user(self, user: User, candidates: Iterable[User]) -> list[User]:
        """People recommendations ordered by compatibility score."""
        scored = [
            (candidate, self.compatibility_score(user, candidate))
            for candidate in _dedupe_by_id(candidates)
            if candidate.id != user.id
        ]
        ranked = [c for c, score in sorted(scored, key=lambda p: p[1], reverse=True) if score > 0]

        context = RankingContext(
            kind="users_for_user",
            subject=_user_profile(user),
            candidates=[_user_profile(u) for u in ranked],
        )
        return await self._rerank(
            context, ranked, self.settings.ORACLE_USER_MATCH_THRESHOLD, user_id=user.id
        )

    # ------------------------------------------------------------------
    # Oracle delegation
    # ------------------------------------------------------------------

    async def _call_oracle(self, operation: str, call: Callable, **log_fields):
        """Await an oracle coroutine under the configured timeout; None on any failure."""
        if self.oracle is None:
            return None
        try:
            return await asyncio.wait_for(call(), timeout=self.settings.ORACLE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning(
                "Ranking oracle timed out, using fallback",
                operation=operation,
                timeout=self.settings.ORACLE_TIMEOUT_SECONDS,
                **log_fields,
            )
        except OracleUnavailableError as e:
            logger.warning(
                "Ranking oracle unavailable, using fallback",
                operation=operation,
                error=e.message,
                api_error=e.api_error,
                **log_fields,
            )
        except Exception as e:
            logger.warning(
                "Unexpected ranking oracle failure, using fallback",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
                **log_fields,
            )
        return None

    async def external_rank(self, context: RankingContext) -> list[RankedCandidate] | None:
        """Oracle ranking for ``context``, or None when it cannot be used."""
        if not context.candidates:
            return None
        return await self._call_oracle(
            context.kind, lambda: self.oracle.rank_compatibility(context)
        )

    async def _rerank(
        self, context: RankingContext, ranked: list[T], threshold: float, **log_fields
    ) -> list[T]:
        oracle_ranking = await self.external_rank(context)
        if not oracle_ranking:
            return ranked
        if not isinstance(oracle_ranking, list | tuple):
            logger.warning(
                "Oracle ranking is not a list, using deterministic order",
                kind=context.kind,
                result_type=type(oracle_ranking).__name__,
                **log_fields,
            )
            return ranked

        by_id = {item.id: item for item in ranked}
        reordered: list[T] = []
        skipped = 0
        for candidate in oracle_ranking:
            if not isinstance(candidate, RankedCandidate) or not isinstance(
                candidate.score, int | float
            ):
                skipped += 1
                continue
            item = by_id.pop(candidate.id, None)
            if item is not None and candidate.score > threshold:
                reordered.append(item)

        if skipped:
            logger.warning(
                "Skipped malformed oracle ranking rows", kind=context.kind, skipped=skipped
            )

        if not reordered:
            logger.info(
                "Oracle ranking had no usable candidates, using deterministic order",
                kind=context.kind,
                **log_fields,
            )
            return ranked

        logger.info(
            "Oracle ranking applied",
            kind=context.kind,
            candidates=len(ranked),
            returned=len(reordered),
            **log_fields,
        )
        return reordered

    # ------------------------------------------------------------------
    # Scheduling and tagging
    # ------------------------------------------------------------------

    async def mutual_time_slot_across_users(
        self, availabilities: list[UserAvailabilityWindow]
    ) -> MutualSlotSuggestion:
        """Best shared (date, slot) for a group; the oracle is consulted first."""
        if availabilities:
            suggestion = await self._call_oracle(
                "suggest_mutual_slot",
                lambda: self.oracle.suggest_mutual_slot(availabilities),
                users=len(availabilities),
            )
            if isinstance(suggestion, MutualSlotSuggestion) and self._is_usable_suggestion(
                suggestion, availabilities
            ):
                return suggestion

        return self.fallback_mutual_time_slot(availabilities)

    @staticmethod
    def _is_usable_suggestion(
        suggestion: MutualSlotSuggestion, availabilities: list[UserAvailabilityWindow]
    ) -> bool:
        offered = {slot for window in availabilities for slot in window.time_slots}
        if suggestion.time_slot not in offered:
            logger.warning("Oracle suggested a slot nobody offered", time_slot=suggestion.time_slot)
            return False
        try:
            normalize_date(suggestion.date)
        except CoordinationError:
            logger.warning("Oracle suggested an unparsable date", date=suggestion.date)
            return False
        return True

    @staticmethod
    def fallback_mutual_time_slot(
        availabilities: list[UserAvailabilityWindow],
    ) -> MutualSlotSuggestion:
        """
        Most frequently offered (date, slot) pair.

        Ties go to the pair seen first. With no pairs at all, use the first
        user's first date, then today's evening.
        """
        counts: dict[tuple[str, str], int] = {}
        for window in availabilities:
            for day in window.dates:
                for slot in window.time_slots:
                    counts[(day, slot)] = counts.get((day, slot), 0) + 1

        best_key, best_count = None, 0
        for key, count in counts.items():
            if count > best_count:
                best_key, best_count = key, count

        if best_key is not None:
            return MutualSlotSuggestion(date=best_key[0], time_slot=best_key[1])

        if availabilities and availabilities[0].dates:
            first = availabilities[0]
            return MutualSlotSuggestion(
                date=first.dates[0],
                time_slot=first.time_slots[0] if first.time_slots else DEFAULT_TIME_SLOT,
            )

        return MutualSlotSuggestion(
            date=datetime.now(UTC).date().isoformat(), time_slot=DEFAULT_TIME_SLOT
        )

    async def suggest_tags(self, title: str, description: str, event_type: str) -> list[str]:
        """Oracle-generated tags, normalized; empty when the oracle is unavailable."""
        tags = await self._call_oracle(
            "suggest_tags", lambda: self.oracle.suggest_tags(title, description, event_type)
        )
        if not tags:
            return []
        if not isinstance(tags, list | tuple):
            logger.warning("Oracle tags are not a list, ignoring", result_type=type(tags).__name__)
            return []

        normalized = []
        for tag in tags:
            if not isinstance(tag, str):
                continue
            cleaned = " ".join(tag.strip().lower().split())
            if cleaned and cleaned not in normalized:
                normalized.append(cleaned)
        return normalized[:MAX_TAGS]
