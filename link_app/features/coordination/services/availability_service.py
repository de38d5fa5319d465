"""
Availability service - per-user, per-date time slot records and mutual slot
search across a set of users.
"""

import math
from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime

from link_app.features.coordination.domain import (
    TIMESLOT_RANK,
    AvailabilityRecord,
    TimeSlot,
    ValidationError,
)
from link_app.features.coordination.repository import AvailabilityRepository
from link_app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def normalize_date(value: date | datetime | str) -> date:
    """
    Reduce a date-like value to its calendar date.

    The wall-clock date of the value as supplied is kept; time of day and
    offset are discarded, so ``2024-01-01T23:30:00-05:00`` is 2024-01-01.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise ValidationError("Date is required")
        try:
            return date.fromisoformat(raw)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value!r}") from e
    raise ValidationError(f"Invalid date: {value!r}")


def normalize_timeslots(timeslots: Iterable[str | TimeSlot]) -> tuple[TimeSlot, ...]:
    """Validate labels and return them deduplicated in canonical order."""
    if timeslots is None or isinstance(timeslots, str):
        raise ValidationError("Timeslots must be a list of slot labels")

    parsed: set[TimeSlot] = set()
    for label in timeslots:
        try:
            parsed.add(TimeSlot(label))
        except ValueError as e:
            raise ValidationError(
                f"Unknown time slot {label!r}; expected one of {', '.join(TimeSlot.labels())}"
            ) from e

    if not parsed:
        raise ValidationError("At least one time slot is required")

    return tuple(sorted(parsed, key=TIMESLOT_RANK.__getitem__))


class AvailabilityService:
    """Availability records and mutual slot computation."""

    def __init__(self, repository: AvailabilityRepository):
        self.repository = repository

    async def set_availability(
        self, user_id: int, day: date | datetime | str, timeslots: Iterable[str | TimeSlot]
    ) -> AvailabilityRecord:
        """Replace the user's slot set for that calendar date."""
        normalized_day = normalize_date(day)
        slots = normalize_timeslots(timeslots)

        record = await self.repository.upsert(user_id, normalized_day, slots)
        logger.info(
            "Availability saved",
            user_id=user_id,
            date=normalized_day.isoformat(),
            timeslots=[s.value for s in slots],
        )
        return record

    async def clear_availability(self, user_id: int, day: date | datetime | str) -> bool:
        normalized_day = normalize_date(day)
        removed = await self.repository.delete(user_id, normalized_day)
        logger.info(
            "Availability cleared",
            user_id=user_id,
            date=normalized_day.isoformat(),
            removed=removed,
        )
        return removed

    async def get_availability(self, user_id: int) -> list[AvailabilityRecord]:
        return await self.repository.list_for_user(user_id)

    async def users_available_on(self, day: date | datetime | str) -> set[int]:
        records = await self.repository.list_for_date(normalize_date(day))
        return {record.user_id for record in records if record.timeslots}

    async def mutual_slots(
        self, user_ids: Iterable[int], day: date | datetime | str
    ) -> list[TimeSlot]:
        """
        Slots every responding user has open on ``day``.

        Users without a record for the date add no constraint. When no slot is
        shared by all respondents, fall back to slots open for at least half
        (rounded up) of the queried users. Result is in canonical order.
        """
        queried = list(dict.fromkeys(user_ids))
        if not queried:
            raise ValidationError("User IDs required")

        normalized_day = normalize_date(day)
        wanted = set(queried)
        records = [
            r for r in await self.repository.list_for_date(normalized_day) if r.user_id in wanted
        ]
        if not records:
            return []

        counts: Counter[TimeSlot] = Counter()
        for record in records:
            counts.update(set(record.timeslots))

        unanimous = [slot for slot, count in counts.items() if count == len(records)]
        if unanimous:
            return sorted(unanimous, key=TIMESLOT_RANK.__getitem__)

        threshold = math.ceil(len(queried) / 2)
        majority = [slot for slot, count in counts.items() if count >= threshold]

        logger.debug(
            "No unanimous slot, using majority threshold",
            date=normalized_day.isoformat(),
            queried=len(queried),
            respondents=len(records),
            threshold=threshold,
            matches=len(majority),
        )
        return sorted(majority, key=TIMESLOT_RANK.__getitem__)
