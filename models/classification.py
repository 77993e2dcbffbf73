"""Slot classification results and the per-date schedule they come from."""

from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.opened_slot import OpenedSlot, SlotTarget
from models.schedule import WeekHour, WeekSlot


class SlotCategory(str, Enum):
    """Exactly one category per (date, slot)."""

    TRAINING = "training"  # blocking recurring slot
    COURSE = "course"  # indicative recurring slot, booking allowed
    OPENED = "opened"  # ad-hoc opened slot, target-restricted
    CLOSED = "closed"


class ClosedReason(str, Enum):
    BLOCKED = "blocked"
    NOT_OPENED = "not_opened"
    CURRENT_WEEK_DEFAULT = "current_week_default"


class DaySchedule(BaseModel):
    """Everything the classifier needs to know about one date."""

    date: date
    week_configured: bool = False
    is_current_week: bool = False
    week_slots: List[WeekSlot] = Field(default_factory=list)
    week_hours: List[WeekHour] = Field(default_factory=list)
    opened_slots: Dict[str, OpenedSlot] = Field(default_factory=dict)


class SlotClassification(BaseModel):
    """Category of one slot with the record that decided it."""

    model_config = ConfigDict(use_enum_values=True)

    slot_id: str
    date: date
    category: SlotCategory
    bookable: bool
    target: Optional[SlotTarget] = None
    reason: Optional[ClosedReason] = None
    week_slot: Optional[WeekSlot] = None
    opened_slot: Optional[OpenedSlot] = None

    @property
    def is_blocking(self) -> bool:
        return self.category == SlotCategory.TRAINING
