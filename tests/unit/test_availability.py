"""
Unit tests for the availability engine: registration rules, duration
bounds and participants.
"""

import pytest

from factories import (
    NEXT_MONDAY,
    TODAY,
    make_member,
    seed_invitation,
    seed_opened_slot,
    seed_reservations,
    seed_week,
    seed_week_hour,
    seed_week_slot,
)
from models.member import LicenseType
from models.participant import Guest, Owner
from services.availability import license_matches, targets_compatible
from services.time_grid import TIME_SLOTS, slot_ids_from, slot_minutes
from utils.exceptions import ValidationError


def durations(options):
    return [option.slots for option in options]


@pytest.fixture
def training_evening(store):
    """Next Monday: 18:00, 18:30 and 19:00 opened, training 19:00-20:00."""
    config_id = seed_week(store, NEXT_MONDAY)
    for slot_id in ("18:00", "18:30", "19:00"):
        seed_opened_slot(store, NEXT_MONDAY, slot_id)
    seed_week_slot(store, config_id, NEXT_MONDAY, "19:00", "20:00", name="Équipe 1")
    return config_id


@pytest.mark.asyncio
async def test_duration_stops_before_training(services, training_evening):
    """A booking from 18:00 may end at 19:00 but not run into the training."""
    options = await services.availability.available_durations(NEXT_MONDAY, "18:00")

    assert durations(options) == [1, 2]


@pytest.mark.asyncio
async def test_durations_never_cross_blocking_slot(services, store):
    config_id = seed_week(store, NEXT_MONDAY)
    seed_week_slot(store, config_id, NEXT_MONDAY, "18:00", "19:30", name="Jeunes")
    seed_week_slot(store, config_id, NEXT_MONDAY, "10:00", "12:00", name="Loisirs", is_blocking=False)
    blocked = {slot.id for slot in TIME_SLOTS if 18 * 60 <= slot.minutes < 19 * 60 + 30}

    for slot in TIME_SLOTS:
        options = await services.availability.available_durations(NEXT_MONDAY, slot.id)
        for option in options:
            assert not blocked & set(slot_ids_from(slot.id, option.slots))


@pytest.mark.asyncio
async def test_course_slot_allows_long_bookings(services, store):
    config_id = seed_week(store, NEXT_MONDAY)
    seed_week_slot(store, config_id, NEXT_MONDAY, "10:00", "14:00", name="Loisirs", is_blocking=False)

    options = await services.availability.available_durations(NEXT_MONDAY, "10:00")

    assert durations(options) == list(range(1, 9))
    assert options[-1].label == "4h"


@pytest.mark.asyncio
async def test_duration_limited_by_catalog_end(services):
    options = await services.availability.available_durations(TODAY, "22:00")

    assert durations(options) == [1, 2]


@pytest.mark.asyncio
async def test_duration_limited_by_opening_hours(services, store):
    config_id = seed_week(store, NEXT_MONDAY)
    seed_week_hour(store, config_id, NEXT_MONDAY, "14:00", "21:00")
    for slot_id in ("20:00", "20:30", "21:00"):
        seed_opened_slot(store, NEXT_MONDAY, slot_id)

    options = await services.availability.available_durations(NEXT_MONDAY, "20:00")

    assert durations(options) == [1, 2]


@pytest.mark.asyncio
async def test_opened_span_needs_compatible_targets(services, store):
    seed_week(store, NEXT_MONDAY)
    seed_opened_slot(store, NEXT_MONDAY, "20:00", target="all")
    seed_opened_slot(store, NEXT_MONDAY, "20:30", target="competition")
    seed_opened_slot(store, NEXT_MONDAY, "21:00", target="all")

    from_all = await services.availability.available_durations(NEXT_MONDAY, "20:00")
    from_competition = await services.availability.available_durations(NEXT_MONDAY, "20:30")

    assert durations(from_all) == [1]
    assert durations(from_competition) == [1, 2]


@pytest.mark.asyncio
async def test_opened_span_stops_at_closed_slot(services, store):
    seed_week(store, NEXT_MONDAY)
    seed_opened_slot(store, NEXT_MONDAY, "15:00")

    options = await services.availability.available_durations(NEXT_MONDAY, "15:00")

    assert durations(options) == [1]


@pytest.mark.asyncio
async def test_unconfigured_week_refuses_registration(services, store):
    """Outside the current week, no configuration means no booking."""
    seed_opened_slot(store, NEXT_MONDAY, "18:00")
    member = make_member(license_type=LicenseType.COMPETITION)

    for slot in TIME_SLOTS:
        assert await services.availability.can_user_register(member, NEXT_MONDAY, slot.id) is False
    assert await services.availability.can_reserve_on_week(NEXT_MONDAY) is False


@pytest.mark.asyncio
async def test_current_week_grace(services):
    member = make_member()

    assert await services.availability.can_reserve_on_week(TODAY) is True
    assert await services.availability.can_user_register(member, TODAY, "18:00") is True


@pytest.mark.asyncio
async def test_license_restrictions(services, store):
    seed_week(store, NEXT_MONDAY)
    seed_opened_slot(store, NEXT_MONDAY, "20:00", target="competition")
    seed_opened_slot(store, NEXT_MONDAY, "21:00", target="loisir")
    engine = services.availability

    competitor = make_member("c1", license_type=LicenseType.COMPETITION)
    leisure = make_member("l1", license_type=LicenseType.LOISIR)
    unlicensed = make_member("n1")

    assert await engine.can_user_register(competitor, NEXT_MONDAY, "20:00") is True
    assert await engine.can_user_register(leisure, NEXT_MONDAY, "20:00") is False
    assert await engine.can_user_register(unlicensed, NEXT_MONDAY, "20:00") is False
    assert await engine.can_user_register(leisure, NEXT_MONDAY, "21:00") is True
    assert await engine.can_user_register("C", NEXT_MONDAY, "21:00") is False


def test_license_matching_rules():
    assert license_matches(None, "all")
    assert license_matches(LicenseType.LOISIR, "loisir")
    assert not license_matches(None, "loisir")
    assert not license_matches(LicenseType.COMPETITION, None)
    assert targets_compatible("competition", "all")
    assert targets_compatible("competition", "competition")
    assert not targets_compatible("all", "loisir")


@pytest.mark.asyncio
async def test_validate_booking_rejects_crossing_training(services, training_evening):
    member = make_member()

    with pytest.raises(ValidationError):
        await services.availability.validate_booking(member, NEXT_MONDAY, "18:00", 3)

    classification = await services.availability.validate_booking(member, NEXT_MONDAY, "18:00", 2)
    assert classification.category == "opened"


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [0, 9])
async def test_validate_booking_rejects_bad_duration(services, duration):
    with pytest.raises(ValidationError):
        await services.availability.validate_booking(make_member(), TODAY, "18:00", duration)


@pytest.mark.asyncio
async def test_validate_booking_rejects_training_start(services, training_evening):
    with pytest.raises(ValidationError, match="training"):
        await services.availability.validate_booking(make_member(), NEXT_MONDAY, "19:30", 1)


@pytest.mark.asyncio
async def test_participants_owners_first(services, store):
    seed_invitation(store, TODAY, "18:00", "guest-1", invited_by="player-0", status="accepted")
    seed_invitation(store, TODAY, "18:00", "guest-2", invited_by="player-0")
    seed_reservations(store, TODAY, "18:00", 2)

    participants = await services.availability.participants(TODAY, "18:00")

    assert [type(p) for p in participants] == [Owner, Owner, Guest, Guest]
    roster = await services.availability.roster(TODAY, "18:00")
    assert roster.accepted_count == 3
    assert roster.pending_count == 1
    assert roster.max_persons == 16
    assert roster.overbooked is False


@pytest.mark.asyncio
async def test_overbooking_counts_accepted_only(services, store):
    seed_reservations(store, TODAY, "18:00", 15)
    seed_invitation(store, TODAY, "18:00", "guest-1", invited_by="player-0")

    assert await services.availability.would_overbook(TODAY, "18:00") is False

    seed_invitation(store, TODAY, "18:00", "guest-2", invited_by="player-0", status="accepted")

    assert await services.availability.would_overbook(TODAY, "18:00") is True
    assert await services.availability.is_overbooked(TODAY, "18:00") is False


@pytest.mark.asyncio
async def test_overbooking_checks_whole_span(services, store):
    seed_reservations(store, TODAY, "18:30", 16)

    assert await services.availability.would_overbook(TODAY, "18:00", duration=1) is False
    assert await services.availability.would_overbook(TODAY, "18:00", duration=2) is True


@pytest.mark.asyncio
async def test_overbooking_skips_slots_the_user_holds(services, store):
    seed_reservations(store, TODAY, "18:00", 16)
    seed_reservations(store, TODAY, "18:30", 15)

    assert await services.availability.would_overbook(TODAY, "18:00", user_id="player-0") is False
    assert await services.availability.would_overbook(TODAY, "18:00", user_id="outsider") is True
    assert (
        await services.availability.would_overbook(TODAY, "18:00", duration=2, user_id="player-0")
        is False
    )


@pytest.mark.asyncio
async def test_capacity_follows_total_tables_setting(services, store):
    seed_reservations(store, TODAY, "18:00", 16)
    await services.club_settings.set_total_tables(10)

    assert await services.availability.would_overbook(TODAY, "18:00") is False
    assert slot_minutes("18:00") == 18 * 60
