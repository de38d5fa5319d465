"""
Tests for availability records and the mutual slot search.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from link_app.features.coordination.domain import TimeSlot, ValidationError
from link_app.features.coordination.repository import InMemoryAvailabilityRepository
from link_app.features.coordination.services.availability_service import (
    AvailabilityService,
    normalize_date,
    normalize_timeslots,
)


@pytest.fixture
def service():
    return AvailabilityService(InMemoryAvailabilityRepository())


def test_normalize_date_accepts_date_datetime_and_strings():
    assert normalize_date(date(2024, 3, 9)) == date(2024, 3, 9)
    assert normalize_date(datetime(2024, 3, 9, 22, 15)) == date(2024, 3, 9)
    assert normalize_date("2024-03-09") == date(2024, 3, 9)
    assert normalize_date("2024-03-09T18:30:00Z") == date(2024, 3, 9)


def test_normalize_date_keeps_wall_clock_date():
    late_evening = datetime(2024, 1, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))

    assert normalize_date(late_evening) == date(2024, 1, 1)
    assert normalize_date("2024-01-01T23:30:00-05:00") == date(2024, 1, 1)


@pytest.mark.parametrize("value", ["", "next tuesday", "2024-13-01", 20240101, None])
def test_normalize_date_rejects_garbage(value):
    with pytest.raises(ValidationError):
        normalize_date(value)


def test_normalize_timeslots_dedupes_into_canonical_order():
    slots = normalize_timeslots(["night", "morning", "night", "early_morning_1"])

    assert slots == (TimeSlot.EARLY_MORNING_1, TimeSlot.MORNING, TimeSlot.NIGHT)


@pytest.mark.parametrize("value", [[], ["brunch"], "morning", None])
def test_normalize_timeslots_rejects_invalid_input(value):
    with pytest.raises(ValidationError):
        normalize_timeslots(value)


@pytest.mark.asyncio
async def test_set_availability_replaces_previous_slots(service):
    await service.set_availability(1, "2024-06-01", ["morning", "evening"])
    await service.set_availability(1, datetime(2024, 6, 1, 9, 0), ["night"])

    records = await service.get_availability(1)

    assert len(records) == 1
    assert records[0].timeslots == (TimeSlot.NIGHT,)


@pytest.mark.asyncio
async def test_set_availability_rejects_empty_slots_and_keeps_prior_record(service):
    await service.set_availability(1, "2024-06-01", ["morning"])

    with pytest.raises(ValidationError):
        await service.set_availability(1, "2024-06-01", [])

    records = await service.get_availability(1)
    assert records[0].timeslots == (TimeSlot.MORNING,)


@pytest.mark.asyncio
async def test_get_availability_is_ordered_by_date(service):
    await service.set_availability(1, "2024-06-03", ["morning"])
    await service.set_availability(1, "2024-06-01", ["evening"])
    await service.set_availability(1, "2024-06-02", ["night"])

    records = await service.get_availability(1)

    assert [r.date for r in records] == [date(2024, 6, 1), date(2024, 6, 2), date(2024, 6, 3)]


@pytest.mark.asyncio
async def test_clear_availability(service):
    await service.set_availability(1, "2024-06-01", ["morning"])

    assert await service.clear_availability(1, "2024-06-01") is True
    assert await service.clear_availability(1, "2024-06-01") is False
    assert await service.get_availability(1) == []


@pytest.mark.asyncio
async def test_users_available_on(service):
    await service.set_availability(1, "2024-06-01", ["morning"])
    await service.set_availability(2, "2024-06-01", ["night"])
    await service.set_availability(3, "2024-06-02", ["night"])

    assert await service.users_available_on("2024-06-01") == {1, 2}


@pytest.mark.asyncio
async def test_mutual_slots_unanimous_intersection(service):
    await service.set_availability(1, "2024-06-01", ["morning", "evening", "night"])
    await service.set_availability(2, "2024-06-01", ["evening", "morning"])

    slots = await service.mutual_slots([1, 2], "2024-06-01")

    assert slots == [TimeSlot.MORNING, TimeSlot.EVENING]


@pytest.mark.asyncio
async def test_mutual_slots_ignores_users_without_a_record(service):
    await service.set_availability(1, "2024-06-01", ["morning", "evening"])
    await service.set_availability(2, "2024-06-01", ["evening"])

    slots = await service.mutual_slots([1, 2, 99], "2024-06-01")

    assert slots == [TimeSlot.EVENING]


@pytest.mark.asyncio
async def test_mutual_slots_majority_fallback(service):
    await service.set_availability(1, "2024-06-01", ["morning", "evening"])
    await service.set_availability(2, "2024-06-01", ["morning"])
    await service.set_availability(3, "2024-06-01", ["evening", "night"])
    await service.set_availability(4, "2024-06-01", ["night"])

    # No slot is shared by all four; ceil(4 / 2) = 2 users is enough
    slots = await service.mutual_slots([1, 2, 3, 4], "2024-06-01")

    assert slots == [TimeSlot.MORNING, TimeSlot.EVENING, TimeSlot.NIGHT]


@pytest.mark.asyncio
async def test_mutual_slots_threshold_counts_queried_users(service):
    await service.set_availability(1, "2024-06-01", ["morning"])
    await service.set_availability(2, "2024-06-01", ["evening"])

    # Five users queried, threshold is three; no slot reaches it
    assert await service.mutual_slots([1, 2, 3, 4, 5], "2024-06-01") == []


@pytest.mark.asyncio
async def test_mutual_slots_empty_when_nobody_responded(service):
    assert await service.mutual_slots([1, 2], "2024-06-01") == []


@pytest.mark.asyncio
async def test_mutual_slots_requires_user_ids(service):
    with pytest.raises(ValidationError, match="User IDs required"):
        await service.mutual_slots([], "2024-06-01")
