"""
Fixed catalog of bookable base slots and duration options.

30 slots of 30 minutes, starting 08:00 through 22:30 (the day ends at
23:00). Durations count consecutive base slots, 1 (30 min) to 8 (4 h).
"""

from typing import Dict, List

from models.time_slot import DurationOption, TimeSlot
from utils.constants import DAY_END_HOUR, DAY_START_HOUR, MAX_DURATION_SLOTS, SLOT_MINUTES
from utils.exceptions import ValidationError

DAY_START_MINUTES = DAY_START_HOUR * 60
DAY_END_MINUTES = DAY_END_HOUR * 60


def _build_catalog() -> List[TimeSlot]:
    slots = []
    for minutes in range(DAY_START_MINUTES, DAY_END_MINUTES, SLOT_MINUTES):
        hour, minute = divmod(minutes, 60)
        slots.append(TimeSlot(id=f"{hour}:{minute:02d}", hour=hour, minute=minute))
    return slots


def _duration_label(minutes: int) -> str:
    hours, rest = divmod(minutes, 60)
    if not hours:
        return f"{rest} min"
    return f"{hours}h{rest:02d}" if rest else f"{hours}h"


TIME_SLOTS: List[TimeSlot] = _build_catalog()
_INDEX: Dict[str, int] = {slot.id: i for i, slot in enumerate(TIME_SLOTS)}

DURATION_OPTIONS: List[DurationOption] = [
    DurationOption(slots=n, minutes=n * SLOT_MINUTES, label=_duration_label(n * SLOT_MINUTES))
    for n in range(1, MAX_DURATION_SLOTS + 1)
]


def slot_index(slot_id: str) -> int:
    """Position of a slot in the catalog."""
    try:
        return _INDEX[slot_id]
    except KeyError:
        raise ValidationError(f"Unknown slot: {slot_id}") from None


def get_time_slot(slot_id: str) -> TimeSlot:
    return TIME_SLOTS[slot_index(slot_id)]


def slot_minutes(slot_id: str) -> int:
    """Start of a slot in minutes since midnight."""
    return get_time_slot(slot_id).minutes


def slot_id_for_minutes(minutes: int) -> str:
    """Catalog slot starting exactly at `minutes`."""
    hour, minute = divmod(minutes, 60)
    slot_id = f"{hour}:{minute:02d}"
    slot_index(slot_id)
    return slot_id


def span_fits(slot_id: str, count: int) -> bool:
    """Whether `count` consecutive slots starting at `slot_id` stay in the day."""
    return count >= 1 and slot_index(slot_id) + count <= len(TIME_SLOTS)


def slot_ids_from(slot_id: str, count: int) -> List[str]:
    """
    The `count` consecutive slot ids starting at `slot_id`.

    Raises:
        ValidationError: If the span leaves the catalog
    """
    if not span_fits(slot_id, count):
        raise ValidationError(f"{count} slots from {slot_id} exceed the day")
    start = slot_index(slot_id)
    return [slot.id for slot in TIME_SLOTS[start:start + count]]


def get_duration_option(slots: int) -> DurationOption:
    for option in DURATION_OPTIONS:
        if option.slots == slots:
            return option
    raise ValidationError(f"Unsupported duration: {slots} slots")
