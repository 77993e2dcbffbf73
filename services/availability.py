"""
Availability engine: who may book a slot, for how long, and who is
already playing on it.

Overbooking is advisory. It is computed for display and stamped on new
reservations, it never rejects a booking.
"""

import logging
from collections import Counter
from datetime import date
from typing import List, Optional, Union

from db.store import Store
from models.classification import DaySchedule, SlotCategory, SlotClassification
from models.invitation import Invitation, InvitationStatus
from models.member import LicenseType, Member
from models.opened_slot import SlotTarget
from models.participant import Guest, Owner, Participant, Roster
from models.reservation import Reservation
from models.time_slot import DurationOption
from services.classifier import SlotClassifier, classify_slot, closing_minutes
from services.club_settings import ClubSettings
from services.time_grid import (
    DURATION_OPTIONS,
    TIME_SLOTS,
    slot_ids_from,
    slot_index,
)
from utils.constants import (
    INVITATIONS_TABLE,
    MAX_DURATION_SLOTS,
    RESERVATIONS_TABLE,
    SLOT_MINUTES,
)
from utils.datetime_utils import parse_iso_date
from utils.exceptions import ValidationError
from utils.validation import validate_duration

logger = logging.getLogger(__name__)

UserLike = Union[Member, LicenseType, str, None]

_TARGET_LICENSES = {
    SlotTarget.LOISIR: LicenseType.LOISIR,
    SlotTarget.COMPETITION: LicenseType.COMPETITION,
}


def license_of(user: UserLike) -> Optional[LicenseType]:
    """License type of a member, or the license itself."""
    if isinstance(user, Member):
        user = user.license_type
    if user is None or user == "":
        return None
    try:
        return LicenseType(user)
    except ValueError:
        return None


def license_matches(license_type: Optional[LicenseType], target: Optional[SlotTarget]) -> bool:
    """`all` admits everyone; restricted targets need the matching license."""
    if target is None:
        return False
    target = SlotTarget(target)
    if target == SlotTarget.ALL:
        return True
    return license_type is not None and license_type == _TARGET_LICENSES[target]


def targets_compatible(start_target: Optional[SlotTarget], next_target: Optional[SlotTarget]) -> bool:
    """A booking may continue into an `all` slot or one with its own target."""
    if next_target is None:
        return False
    return SlotTarget(next_target) in (SlotTarget.ALL, SlotTarget(start_target))


def durations_for(schedule: DaySchedule, start_slot_id: str) -> List[DurationOption]:
    """
    Valid durations from `start_slot_id` on a loaded day, ascending.

    A span may not leave the catalog, end after closing time or include a
    training slot. From an opened slot, every following slot must be
    bookable with a compatible target.
    """
    start = slot_index(start_slot_id)
    start_minutes = TIME_SLOTS[start].minutes
    closing = closing_minutes(schedule)
    first = classify_slot(schedule, start_slot_id)

    options: List[DurationOption] = []
    for option in DURATION_OPTIONS:
        last = start + option.slots - 1
        if last >= len(TIME_SLOTS):
            break
        if start_minutes + option.slots * SLOT_MINUTES > closing:
            break

        current = first if last == start else classify_slot(schedule, TIME_SLOTS[last].id)
        if current.category == SlotCategory.TRAINING:
            break
        if first.category == SlotCategory.OPENED and last != start:
            if not current.bookable or not targets_compatible(first.target, current.target):
                break

        options.append(option)
    return options


class AvailabilityEngine:
    """Read-only booking queries over classifier, reservations and invitations."""

    def __init__(self, store: Store, classifier: SlotClassifier, club_settings: ClubSettings):
        self.store = store
        self.classifier = classifier
        self.club_settings = club_settings

    # ========== Registration ==========

    @staticmethod
    def _registration_error(
        user: UserLike, schedule: DaySchedule, classification: SlotClassification
    ) -> Optional[str]:
        if not (schedule.week_configured or schedule.is_current_week):
            return "Reservations are not open for this week yet"
        if not classification.bookable:
            if classification.category == SlotCategory.TRAINING:
                return "This slot is reserved for training"
            return "This slot is not opened for booking"
        if not license_matches(license_of(user), classification.target):
            return f"This slot is restricted to {classification.target} licenses"
        return None

    async def can_reserve_on_week(self, day: Union[date, str]) -> bool:
        """Configured weeks and the current week accept reservations."""
        day = parse_iso_date(day)
        if self.classifier.is_current_week(day):
            return True
        return await self.classifier.is_week_configured(day)

    async def can_user_register(self, user: UserLike, day: Union[date, str], slot_id: str) -> bool:
        schedule = await self.classifier.load_day(day)
        classification = classify_slot(schedule, slot_id)
        return self._registration_error(user, schedule, classification) is None

    async def available_durations(self, day: Union[date, str], start_slot_id: str) -> List[DurationOption]:
        slot_index(start_slot_id)
        schedule = await self.classifier.load_day(day)
        return durations_for(schedule, start_slot_id)

    async def validate_booking(
        self, user: UserLike, day: Union[date, str], slot_id: str, duration: int
    ) -> SlotClassification:
        """
        Check a booking request before any write.

        Raises:
            ValidationError: If the user may not book this slot or the
                duration is not available from it
        """
        if not validate_duration(duration, MAX_DURATION_SLOTS):
            raise ValidationError(f"Invalid duration: {duration}")

        schedule = await self.classifier.load_day(day)
        classification = classify_slot(schedule, slot_id)

        error = self._registration_error(user, schedule, classification)
        if error:
            raise ValidationError(error)

        allowed = {option.slots for option in durations_for(schedule, slot_id)}
        if duration not in allowed:
            raise ValidationError(
                f"A {duration}-slot booking from {slot_id} crosses a blocked "
                f"or unavailable slot"
            )
        return classification

    # ========== Participants ==========

    async def participants(self, day: Union[date, str], slot_id: str) -> List[Participant]:
        """Reservation owners first, then invited guests."""
        day = parse_iso_date(day)
        filters = {"slot_id": slot_id, "date": day}
        reservation_rows = await self.store.query(RESERVATIONS_TABLE, filters)
        invitation_rows = await self.store.query(INVITATIONS_TABLE, filters)

        participants: List[Participant] = []
        for row in reservation_rows:
            reservation = Reservation(**row)
            participants.append(
                Owner(
                    user_id=reservation.user_id,
                    user_name=reservation.user_name,
                    duration=reservation.duration,
                )
            )
        for row in invitation_rows:
            invitation = Invitation(**row)
            participants.append(
                Guest(
                    user_id=invitation.user_id,
                    user_name=invitation.user_name,
                    status=invitation.status,
                    invited_by=invitation.invited_by,
                )
            )
        return participants

    async def roster(self, day: Union[date, str], slot_id: str) -> Roster:
        participants = await self.participants(day, slot_id)
        max_persons = await self.club_settings.get_max_persons()
        return Roster(participants=participants, max_persons=max_persons)

    async def is_overbooked(self, day: Union[date, str], slot_id: str) -> bool:
        return (await self.roster(day, slot_id)).overbooked

    async def would_overbook(
        self,
        day: Union[date, str],
        slot_id: str,
        duration: int = 1,
        extra: int = 1,
        user_id: Optional[str] = None,
    ) -> bool:
        """
        Whether `extra` more accepted players push any slot of the span over capacity.

        Slots `user_id` already holds are counted as they stand, since
        registering again there adds nobody.
        """
        day = parse_iso_date(day)
        slot_ids = slot_ids_from(slot_id, duration)

        reservations = await self.store.query(
            RESERVATIONS_TABLE, {"date": day, "slot_id": slot_ids}
        )
        accepted_guests = await self.store.query(
            INVITATIONS_TABLE,
            {"date": day, "slot_id": slot_ids, "status": InvitationStatus.ACCEPTED},
        )
        counts = Counter(row["slot_id"] for row in reservations)
        counts.update(row["slot_id"] for row in accepted_guests)
        held = {row["slot_id"] for row in reservations if user_id and row["user_id"] == user_id}

        max_persons = await self.club_settings.get_max_persons()
        return any(
            counts[sid] + (0 if sid in held else extra) > max_persons for sid in slot_ids
        )
