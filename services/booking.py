"""
Booking writes: reservations, invitations and ad-hoc opened slots.

A duration-N booking is N reservation rows on consecutive base slots,
written as one batch. Duplicate (slot_id, date, user_id) rows are ignored
by the store, which makes registering twice a no-op.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from db.store import Store
from models.invitation import Invitation, InvitationCreate, InvitationStatus
from models.member import Member
from models.opened_slot import OpenedSlot, SlotTarget
from models.reservation import Reservation, ReservationCreate
from models.results import BookingResult
from services.availability import AvailabilityEngine
from services.time_grid import TIME_SLOTS, get_time_slot, slot_ids_from, slot_index
from utils.constants import (
    INVITATION_KEY,
    INVITATIONS_TABLE,
    OPENED_SLOT_KEY,
    OPENED_SLOTS_TABLE,
    RESERVATION_KEY,
    RESERVATIONS_TABLE,
)
from utils.datetime_utils import parse_iso_date
from utils.exceptions import ConfirmationRequiredError, RecordNotFoundError, ValidationError

logger = logging.getLogger(__name__)

# (user_id, user_name) of an invited guest
GuestRef = Tuple[str, Optional[str]]


def _chronological(row: dict) -> Tuple[str, int]:
    return str(row.get("date")), slot_index(row["slot_id"])


class BookingTransaction:
    """Reservation, invitation and opened-slot writes."""

    def __init__(self, store: Store, availability: AvailabilityEngine):
        self.store = store
        self.availability = availability

    # ========== Reservations ==========

    async def register(
        self,
        day: Union[date, str],
        slot_id: str,
        user_id: str,
        user_name: Optional[str],
        duration: int = 1,
        overbooked: bool = False,
    ) -> List[Reservation]:
        """
        Reserve `duration` consecutive base slots from `slot_id`.

        Every row carries the same overbooked snapshot. Rows the user
        already owns are left untouched.

        Returns:
            The rows actually created
        """
        day = parse_iso_date(day)
        rows = [
            ReservationCreate(
                slot_id=sid,
                date=day,
                user_id=user_id,
                user_name=user_name,
                duration=duration,
                overbooked=overbooked,
            ).model_dump(mode="json")
            for sid in slot_ids_from(slot_id, duration)
        ]
        created = await self.store.insert(
            RESERVATIONS_TABLE, rows, on_conflict=RESERVATION_KEY, ignore_duplicates=True
        )
        if len(created) < len(rows):
            logger.debug(
                f"{len(rows) - len(created)} slot(s) already reserved by {user_id} on {day}"
            )
        logger.info(
            f"Reserved {slot_id} x{duration} on {day} for {user_id} (overbooked={overbooked})"
        )
        return [Reservation(**row) for row in created]

    async def book(
        self,
        member: Member,
        day: Union[date, str],
        slot_id: str,
        duration: int = 1,
        guests: Iterable[GuestRef] = (),
    ) -> BookingResult:
        """
        Validate, register and invite guests for a member booking.

        Raises:
            ValidationError: If the slot or duration cannot be booked
        """
        day = parse_iso_date(day)
        await self.availability.validate_booking(member, day, slot_id, duration)

        # One snapshot for every row of the booking
        overbooked = await self.availability.would_overbook(
            day, slot_id, duration, user_id=member.user_id
        )

        await self.register(day, slot_id, member.user_id, member.name, duration, overbooked)

        invited = []
        for guest_id, guest_name in guests:
            if guest_id == member.user_id:
                continue
            await self.invite(day, slot_id, guest_id, guest_name, member.user_id)
            invited.append(guest_id)

        return BookingResult(
            date=day,
            slot_ids=slot_ids_from(slot_id, duration),
            duration=duration,
            overbooked=overbooked,
            invited=invited,
        )

    async def unregister(self, day: Union[date, str], slot_id: str, user_id: str) -> int:
        """Delete the user's reservation on one base slot."""
        deleted = await self.store.delete(
            RESERVATIONS_TABLE,
            {"slot_id": slot_id, "date": parse_iso_date(day), "user_id": user_id},
        )
        return len(deleted)

    async def get_reservation(
        self, day: Union[date, str], slot_id: str, user_id: str
    ) -> Optional[Reservation]:
        rows = await self.store.query(
            RESERVATIONS_TABLE,
            {"slot_id": slot_id, "date": parse_iso_date(day), "user_id": user_id},
        )
        return Reservation(**rows[0]) if rows else None

    async def cancel_booking(self, day: Union[date, str], slot_id: str, user_id: str) -> int:
        """
        Cancel the whole booking covering `slot_id`.

        Any slot of the booking may be given. The anchor is found from the
        user's run of consecutive rows sharing the same stored duration:
        back-to-back bookings of equal length are cut every `duration`
        slots from the start of the run. Invitations issued from the
        anchor slot go too.

        Returns:
            Number of reservation rows deleted
        """
        day = parse_iso_date(day)
        rows = await self.store.query(RESERVATIONS_TABLE, {"date": day, "user_id": user_id})
        durations = {row["slot_id"]: row.get("duration") or 1 for row in rows}
        if slot_id not in durations:
            return 0

        duration = durations[slot_id]
        index = slot_index(slot_id)
        run_start = index
        while run_start > 0 and durations.get(TIME_SLOTS[run_start - 1].id) == duration:
            run_start -= 1
        anchor = run_start + (index - run_start) // duration * duration
        anchor_id = TIME_SLOTS[anchor].id
        span = [
            slot.id
            for slot in TIME_SLOTS[anchor:anchor + duration]
            if durations.get(slot.id) == duration
        ]

        deleted = await self.store.delete(
            RESERVATIONS_TABLE, {"slot_id": span, "date": day, "user_id": user_id}
        )
        await self.store.delete(
            INVITATIONS_TABLE, {"slot_id": anchor_id, "date": day, "invited_by": user_id}
        )
        logger.info(f"Cancelled booking {anchor_id} x{duration} on {day} for {user_id}")
        return len(deleted)

    async def get_user_reservations(
        self, user_id: str, day: Optional[Union[date, str]] = None
    ) -> List[Reservation]:
        filters = {"user_id": user_id}
        if day is not None:
            filters["date"] = parse_iso_date(day)
        rows = await self.store.query(RESERVATIONS_TABLE, filters)
        rows.sort(key=_chronological)
        return [Reservation(**row) for row in rows]

    # ========== Invitations ==========

    async def invite(
        self,
        day: Union[date, str],
        slot_id: str,
        user_id: str,
        user_name: Optional[str],
        invited_by: str,
    ) -> Optional[Invitation]:
        """Invite a guest to the booking anchored at `slot_id` (its first slot)."""
        get_time_slot(slot_id)
        row = InvitationCreate(
            slot_id=slot_id,
            date=parse_iso_date(day),
            user_id=user_id,
            user_name=user_name,
            invited_by=invited_by,
        ).model_dump(mode="json")
        created = await self.store.insert(
            INVITATIONS_TABLE, row, on_conflict=INVITATION_KEY, ignore_duplicates=True
        )
        if not created:
            logger.debug(f"{user_id} already invited to {slot_id} on {day}")
            return None
        return Invitation(**created[0])

    async def invite_guests(
        self,
        day: Union[date, str],
        slot_id: str,
        inviter: Member,
        guests: Sequence[GuestRef],
    ) -> List[Invitation]:
        """
        Invite guests to an existing booking without reserving again.

        Raises:
            ValidationError: If no guest is given
        """
        if not guests:
            raise ValidationError("Select at least one guest to invite")

        invitations = []
        for guest_id, guest_name in guests:
            invitation = await self.invite(day, slot_id, guest_id, guest_name, inviter.user_id)
            if invitation is not None:
                invitations.append(invitation)
        return invitations

    async def accept_invitation(self, day: Union[date, str], slot_id: str, user_id: str) -> Invitation:
        updated = await self.store.update(
            INVITATIONS_TABLE,
            {"slot_id": slot_id, "date": parse_iso_date(day), "user_id": user_id},
            {"status": InvitationStatus.ACCEPTED},
        )
        if not updated:
            raise RecordNotFoundError(f"No invitation for {user_id} on {slot_id} {day}")
        return Invitation(**updated[0])

    async def decline_invitation(self, day: Union[date, str], slot_id: str, user_id: str) -> int:
        deleted = await self.store.delete(
            INVITATIONS_TABLE,
            {"slot_id": slot_id, "date": parse_iso_date(day), "user_id": user_id},
        )
        return len(deleted)

    async def get_pending_invitations(self, user_id: str) -> List[Invitation]:
        rows = await self.store.query(
            INVITATIONS_TABLE,
            {"user_id": user_id, "status": InvitationStatus.PENDING},
        )
        rows.sort(key=_chronological)
        return [Invitation(**row) for row in rows]

    async def get_pending_invitations_count(self, user_id: str) -> int:
        return len(await self.get_pending_invitations(user_id))

    # ========== Opened Slots ==========

    async def open_slot(
        self,
        day: Union[date, str],
        slot_id: str,
        opened_by: str,
        target: SlotTarget = SlotTarget.ALL,
    ) -> OpenedSlot:
        """Open a slot (or retarget an already opened one)."""
        get_time_slot(slot_id)
        row = OpenedSlot(
            date=parse_iso_date(day), slot_id=slot_id, opened_by=opened_by, target=target
        ).model_dump(mode="json", exclude_none=True)
        saved = await self.store.upsert(OPENED_SLOTS_TABLE, row, on_conflict=OPENED_SLOT_KEY)
        logger.info(f"Slot {slot_id} on {day} opened by {opened_by} for {SlotTarget(target).value}")
        return OpenedSlot(**(saved[0] if saved else row))

    async def close_slot(
        self, day: Union[date, str], slot_id: str, confirmed: bool = False
    ) -> int:
        """
        Close an opened slot.

        Irreversible when players are registered: their reservations and
        invitations on the slot are deleted, so the caller must confirm.

        Raises:
            ConfirmationRequiredError: If participants exist and
                `confirmed` is False

        Returns:
            Number of reservations deleted
        """
        day = parse_iso_date(day)
        participants = await self.availability.participants(day, slot_id)
        if participants and not confirmed:
            raise ConfirmationRequiredError(
                f"{len(participants)} participant(s) registered on {slot_id}; "
                f"closing deletes their reservations"
            )

        filters = {"slot_id": slot_id, "date": day}
        deleted = await self.store.delete(RESERVATIONS_TABLE, filters)
        await self.store.delete(INVITATIONS_TABLE, filters)
        await self.store.delete(OPENED_SLOTS_TABLE, filters)
        logger.info(f"Slot {slot_id} on {day} closed ({len(deleted)} reservation(s) deleted)")
        return len(deleted)

    async def get_opened_slots(self, day: Union[date, str]) -> List[OpenedSlot]:
        rows = await self.store.query(OPENED_SLOTS_TABLE, {"date": parse_iso_date(day)})
        rows.sort(key=_chronological)
        return [OpenedSlot(**row) for row in rows]

    # ========== Admin Operations ==========

    async def admin_delete_event(self, slot_id: str, day: Union[date, str], user_id: str) -> int:
        """Delete any member's reservation row (no ownership check)."""
        deleted = await self.store.delete(
            RESERVATIONS_TABLE,
            {"slot_id": slot_id, "date": parse_iso_date(day), "user_id": user_id},
        )
        logger.info(f"Admin deleted {len(deleted)} reservation(s) of {user_id} on {slot_id} {day}")
        return len(deleted)

    async def admin_delete_invitation(self, slot_id: str, day: Union[date, str], user_id: str) -> int:
        """Delete any invitation row (no ownership check)."""
        deleted = await self.store.delete(
            INVITATIONS_TABLE,
            {"slot_id": slot_id, "date": parse_iso_date(day), "user_id": user_id},
        )
        logger.info(f"Admin deleted {len(deleted)} invitation(s) of {user_id} on {slot_id} {day}")
        return len(deleted)

    async def update_user_name_in_events(self, user_id: str, new_name: str) -> int:
        """Rename a user on all of their reservations and invitations."""
        patch = {"user_name": new_name}
        reservations = await self.store.update(RESERVATIONS_TABLE, {"user_id": user_id}, patch)
        invitations = await self.store.update(INVITATIONS_TABLE, {"user_id": user_id}, patch)
        return len(reservations) + len(invitations)
