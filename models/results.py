"""Structured results of bookings, template applications and previews."""

from datetime import date
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from models.schedule import MergeMode, WeekHour, WeekSlot


class BookingResult(BaseModel):
    """Outcome of a member booking."""

    date: date
    slot_ids: List[str]
    duration: int
    overbooked: bool = False
    invited: List[str] = Field(default_factory=list)


class WeekApplicationResult(BaseModel):
    """Counts for one week of a template application."""

    week_start: date
    mode: MergeMode
    created: bool = False
    slots_written: int = 0
    hours_written: int = 0
    skipped_slots: int = 0
    skipped_hours: int = 0
    replaced_entries: int = 0
    deleted_reservations: int = 0


class TemplateApplicationResult(BaseModel):
    """Aggregated outcome of applying template(s) onto weeks."""

    success: bool = True
    error: Optional[str] = None
    template_ids: List[str] = Field(default_factory=list)
    weeks: List[WeekApplicationResult] = Field(default_factory=list)

    @property
    def slots_written(self) -> int:
        return sum(w.slots_written for w in self.weeks)

    @property
    def hours_written(self) -> int:
        return sum(w.hours_written for w in self.weeks)

    @property
    def skipped(self) -> int:
        return sum(w.skipped_slots + w.skipped_hours for w in self.weeks)

    @property
    def replaced_entries(self) -> int:
        return sum(w.replaced_entries for w in self.weeks)

    @property
    def deleted_reservations(self) -> int:
        return sum(w.deleted_reservations for w in self.weeks)


class SlotConflict(BaseModel):
    """A template entry that would collide with an existing week entry."""

    week_start: date
    kind: Literal["slot", "hour"]
    new_entry: Union[WeekSlot, WeekHour]
    existing_entry: Union[WeekSlot, WeekHour]


class ConflictReport(BaseModel):
    """Dry-run preview of a template application."""

    template_id: str
    configured_weeks: List[date] = Field(default_factory=list)
    conflicts: List[SlotConflict] = Field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def conflicts_for_week(self, week_start: date) -> List[SlotConflict]:
        return [c for c in self.conflicts if c.week_start == week_start]
