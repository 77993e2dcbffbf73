"""
Schedule primitives shared by the template merger and the conflict
analyzer: day-of-week mapping, the overlap predicate and template
materialization onto a concrete week.

Template days use 0=Sunday..6=Saturday; weeks are Monday-anchored.
"""

from datetime import date, time, timedelta
from typing import Iterable, List, Optional, Union

from models.schedule import TemplateHour, TemplateSlot, WeekHour, WeekSlot
from utils.datetime_utils import to_minutes, week_start_for
from utils.exceptions import ValidationError

SlotLike = Union[TemplateSlot, TemplateHour, WeekSlot, WeekHour]


def day_of_week_to_week_index(day_of_week: int) -> int:
    """
    Offset from Monday of a template day (0=Sunday..6=Saturday).

    Sunday is the 7th day of the week (index 6), Monday index 0.
    """
    if not 0 <= day_of_week <= 6:
        raise ValidationError(f"Invalid day of week: {day_of_week}")
    return 6 if day_of_week == 0 else day_of_week - 1


def date_for_day_of_week(week_start: date, day_of_week: int) -> date:
    return week_start + timedelta(days=day_of_week_to_week_index(day_of_week))


def day_of_week_for_date(day: date) -> int:
    """Template day (0=Sunday) of a calendar date."""
    return (day.weekday() + 1) % 7


def week_dates(week_start: date) -> List[date]:
    return [week_start + timedelta(days=i) for i in range(7)]


def normalize_week_start(day: date) -> date:
    """Monday of the week containing `day`."""
    return week_start_for(day)


def _day_key(entry: SlotLike):
    entry_date = getattr(entry, "date", None)
    if entry_date is not None:
        return ("date", entry_date)
    return ("day_of_week", entry.day_of_week)


def overlaps(a: SlotLike, b: SlotLike) -> bool:
    """
    Same day and intersecting half-open `[start, end)` ranges.
    A range ending at 19:00 does not overlap one starting at 19:00.
    """
    if _day_key(a) != _day_key(b):
        return False
    return a.start_time < b.end_time and b.start_time < a.end_time


def find_overlapping(entry: SlotLike, candidates: Iterable[SlotLike]) -> List[SlotLike]:
    return [candidate for candidate in candidates if overlaps(entry, candidate)]


def contains_time(entry: SlotLike, at: time) -> bool:
    """Whether wall-clock `at` falls inside `[start, end)`."""
    return entry.start_time <= at < entry.end_time


def contains_minutes(entry: SlotLike, minutes: int) -> bool:
    return to_minutes(entry.start_time) <= minutes < to_minutes(entry.end_time)


def materialize_slots(
    template_slots: Iterable[TemplateSlot],
    week_start: date,
    week_config_id: Optional[str] = None,
) -> List[WeekSlot]:
    """Stamp template slots with the concrete dates of the week."""
    return [
        WeekSlot(
            week_config_id=week_config_id,
            date=date_for_day_of_week(week_start, slot.day_of_week),
            start_time=slot.start_time,
            end_time=slot.end_time,
            name=slot.name,
            coach=slot.coach,
            group_name=slot.group_name,
            is_blocking=slot.is_blocking,
        )
        for slot in template_slots
    ]


def materialize_hours(
    template_hours: Iterable[TemplateHour],
    week_start: date,
    week_config_id: Optional[str] = None,
) -> List[WeekHour]:
    """Stamp template opening hours with the concrete dates of the week."""
    return [
        WeekHour(
            week_config_id=week_config_id,
            date=date_for_day_of_week(week_start, hour.day_of_week),
            start_time=hour.start_time,
            end_time=hour.end_time,
        )
        for hour in template_hours
    ]
