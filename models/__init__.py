"""Pydantic models for data validation and serialization."""

from .classification import ClosedReason, DaySchedule, SlotCategory, SlotClassification
from .invitation import Invitation, InvitationCreate, InvitationStatus
from .member import LicenseType, Member, MemberStatus
from .opened_slot import OpenedSlot, SlotTarget
from .participant import Guest, Owner, Participant, Roster
from .reservation import Reservation, ReservationCreate
from .results import (
    BookingResult,
    ConflictReport,
    SlotConflict,
    TemplateApplicationResult,
    WeekApplicationResult,
)
from .schedule import (
    MergeMode,
    Template,
    TemplateHour,
    TemplateSlot,
    WeekConfig,
    WeekHour,
    WeekSlot,
)
from .time_slot import DurationOption, TimeSlot

__all__ = [
    "BookingResult",
    "ClosedReason",
    "ConflictReport",
    "DaySchedule",
    "DurationOption",
    "Guest",
    "Invitation",
    "InvitationCreate",
    "InvitationStatus",
    "LicenseType",
    "Member",
    "MemberStatus",
    "MergeMode",
    "OpenedSlot",
    "Owner",
    "Participant",
    "Reservation",
    "ReservationCreate",
    "Roster",
    "SlotCategory",
    "SlotClassification",
    "SlotConflict",
    "SlotTarget",
    "Template",
    "TemplateApplicationResult",
    "TemplateHour",
    "TemplateSlot",
    "TimeSlot",
    "WeekApplicationResult",
    "WeekConfig",
    "WeekHour",
    "WeekSlot",
]
