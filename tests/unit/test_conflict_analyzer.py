"""
Unit tests for the template conflict preview.
"""

from datetime import date

import pytest
import pytest_asyncio

from factories import NEXT_MONDAY, hm, seed_week, seed_week_hour, seed_week_slot
from models.schedule import MergeMode, TemplateHour, TemplateSlot
from utils.constants import WEEK_CONFIGS_TABLE, WEEK_SLOTS_TABLE
from utils.exceptions import RecordNotFoundError

TUESDAY = date(2024, 6, 11)
FOLLOWING_MONDAY = date(2024, 6, 17)


@pytest_asyncio.fixture
async def open_play(services):
    template = await services.templates.create_template("OpenPlay")
    await services.templates.create_template_slot(
        TemplateSlot(template_id=template.id, day_of_week=2, start_time=hm("10:30"), end_time=hm("11:30"), name="OpenPlay")
    )
    await services.templates.create_template_hour(
        TemplateHour(template_id=template.id, day_of_week=2, start_time=hm("09:00"), end_time=hm("12:00"))
    )
    return template


@pytest.mark.asyncio
async def test_reports_conflicts_on_configured_weeks(services, store, open_play):
    config_id = seed_week(store, NEXT_MONDAY)
    seed_week_slot(store, config_id, TUESDAY, "10:00", "11:00", name="Coaching")
    seed_week_slot(store, config_id, TUESDAY, "11:30", "12:30", name="After")
    seed_week_hour(store, config_id, TUESDAY, "11:00", "22:00")

    report = await services.conflicts.analyze(open_play.id, [NEXT_MONDAY, FOLLOWING_MONDAY])

    assert report.configured_weeks == [NEXT_MONDAY]
    assert report.has_conflicts
    kinds = sorted(conflict.kind for conflict in report.conflicts)
    assert kinds == ["hour", "slot"]
    slot_conflict = next(c for c in report.conflicts if c.kind == "slot")
    assert slot_conflict.existing_entry.name == "Coaching"
    assert slot_conflict.new_entry.name == "OpenPlay"


@pytest.mark.asyncio
async def test_unconfigured_weeks_have_no_conflicts(services, open_play):
    report = await services.conflicts.analyze(open_play.id, [NEXT_MONDAY])

    assert report.configured_weeks == []
    assert not report.has_conflicts


@pytest.mark.asyncio
async def test_never_writes(services, store, open_play):
    config_id = seed_week(store, NEXT_MONDAY)
    seed_week_slot(store, config_id, TUESDAY, "10:00", "11:00", name="Coaching")
    before = (store.rows(WEEK_CONFIGS_TABLE), store.rows(WEEK_SLOTS_TABLE))
    first_call = len(store.calls)

    await services.conflicts.analyze(open_play.id, [NEXT_MONDAY])

    assert (store.rows(WEEK_CONFIGS_TABLE), store.rows(WEEK_SLOTS_TABLE)) == before
    assert {action for action, _ in store.calls[first_call:]} == {"query"}


@pytest.mark.asyncio
async def test_preview_matches_merge(services, store, open_play):
    """Every reported slot conflict is skipped by a merge, and nothing else is."""
    config_id = seed_week(store, NEXT_MONDAY)
    seed_week_slot(store, config_id, TUESDAY, "10:00", "11:00", name="Coaching")

    report = await services.conflicts.analyze(open_play.id, [NEXT_MONDAY])
    result = await services.merger.apply_template_to_weeks(open_play.id, [NEXT_MONDAY], MergeMode.MERGE)

    assert [c.new_entry.name for c in report.conflicts if c.kind == "slot"] == ["OpenPlay"]
    assert result.weeks[0].skipped_slots == 1
    assert result.weeks[0].hours_written == 1


@pytest.mark.asyncio
async def test_unknown_template(services):
    with pytest.raises(RecordNotFoundError):
        await services.conflicts.analyze("missing", [NEXT_MONDAY])
