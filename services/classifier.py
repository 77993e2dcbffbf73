"""
Slot classification.

Each (date, slot) falls in exactly one category, first match wins:
training (blocking week slot) > course (indicative week slot) >
opened (ad-hoc opened slot, or the unconfigured current week) > closed.
"""

import logging
from datetime import date
from typing import Callable, Dict, Optional, Union

from config import Settings
from db.store import Store
from models.classification import (
    ClosedReason,
    DaySchedule,
    SlotCategory,
    SlotClassification,
)
from models.opened_slot import OpenedSlot, SlotTarget
from models.schedule import WeekHour, WeekSlot
from services.schedule import contains_minutes
from services.time_grid import DAY_END_MINUTES, TIME_SLOTS, get_time_slot
from utils.constants import (
    OPENED_SLOTS_TABLE,
    WEEK_CONFIGS_TABLE,
    WEEK_HOURS_TABLE,
    WEEK_SLOTS_TABLE,
)
from utils.datetime_utils import is_same_week, local_today, parse_iso_date, to_minutes, week_start_for

logger = logging.getLogger(__name__)


def classify_slot(schedule: DaySchedule, slot_id: str) -> SlotClassification:
    """Classify one slot of an already loaded day."""
    minutes = get_time_slot(slot_id).minutes
    base = {"slot_id": slot_id, "date": schedule.date}

    containing = [s for s in schedule.week_slots if contains_minutes(s, minutes)]
    blocking = next((s for s in containing if s.is_blocking), None)
    if blocking is not None:
        return SlotClassification(
            **base,
            category=SlotCategory.TRAINING,
            bookable=False,
            reason=ClosedReason.BLOCKED,
            week_slot=blocking,
        )
    if containing:
        return SlotClassification(
            **base,
            category=SlotCategory.COURSE,
            bookable=True,
            target=SlotTarget.ALL,
            week_slot=containing[0],
        )

    opened = schedule.opened_slots.get(slot_id)
    if opened is not None:
        return SlotClassification(
            **base,
            category=SlotCategory.OPENED,
            bookable=True,
            target=opened.target,
            opened_slot=opened,
        )

    if schedule.is_current_week and not schedule.week_configured:
        return SlotClassification(
            **base,
            category=SlotCategory.OPENED,
            bookable=True,
            target=SlotTarget.ALL,
            reason=ClosedReason.CURRENT_WEEK_DEFAULT,
        )

    return SlotClassification(
        **base,
        category=SlotCategory.CLOSED,
        bookable=False,
        reason=ClosedReason.NOT_OPENED,
    )


def closing_minutes(schedule: DaySchedule) -> int:
    """End of the day's opening hours; 23:00 when none are configured."""
    if not schedule.week_hours:
        return DAY_END_MINUTES
    return max(to_minutes(hour.end_time) for hour in schedule.week_hours)


class SlotClassifier:
    """Loads a day's configuration and classifies its slots."""

    def __init__(
        self,
        store: Store,
        settings: Settings,
        today: Optional[Callable[[], date]] = None,
    ):
        self.store = store
        self.settings = settings
        self._today = today or (lambda: local_today(self.settings.timezone))

    def today(self) -> date:
        return self._today()

    def is_current_week(self, day: date) -> bool:
        return is_same_week(day, self.today())

    async def is_week_configured(self, day: date) -> bool:
        rows = await self.store.query(WEEK_CONFIGS_TABLE, {"week_start": week_start_for(day)})
        return bool(rows)

    async def load_day(self, day: Union[date, str]) -> DaySchedule:
        day = parse_iso_date(day)
        week_slots = await self.store.query(WEEK_SLOTS_TABLE, {"date": day}, order_by=["start_time"])
        week_hours = await self.store.query(WEEK_HOURS_TABLE, {"date": day}, order_by=["start_time"])
        opened_rows = await self.store.query(OPENED_SLOTS_TABLE, {"date": day})

        opened = [OpenedSlot(**row) for row in opened_rows]
        return DaySchedule(
            date=day,
            week_configured=await self.is_week_configured(day),
            is_current_week=self.is_current_week(day),
            week_slots=[WeekSlot(**row) for row in week_slots],
            week_hours=[WeekHour(**row) for row in week_hours],
            opened_slots={slot.slot_id: slot for slot in opened},
        )

    async def classify(self, day: Union[date, str], slot_id: str) -> SlotClassification:
        get_time_slot(slot_id)
        schedule = await self.load_day(day)
        return classify_slot(schedule, slot_id)

    async def classify_day(self, day: Union[date, str]) -> Dict[str, SlotClassification]:
        """Classification of every catalog slot of the day."""
        schedule = await self.load_day(day)
        return {slot.id: classify_slot(schedule, slot.id) for slot in TIME_SLOTS}
