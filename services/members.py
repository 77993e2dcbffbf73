"""
Club membership: access requests, approval by the administrators and
member profile updates.
"""

import logging
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from db.store import Store
from models.member import LicenseType, Member, MemberStatus
from services.booking import BookingTransaction
from utils.constants import MAX_NAME_LENGTH, MEMBER_KEY, MEMBERS_TABLE
from utils.datetime_utils import utc_now
from utils.exceptions import RecordNotFoundError, ValidationError
from utils.validation import sanitize_text

logger = logging.getLogger(__name__)


class MembershipService:
    """Membership requests and the approved member list."""

    def __init__(self, store: Store, booking: BookingTransaction):
        self.store = store
        self.booking = booking

    async def get_member(self, user_id: str) -> Optional[Member]:
        rows = await self.store.query(MEMBERS_TABLE, {"user_id": user_id})
        return Member(**rows[0]) if rows else None

    async def _require_member(self, user_id: str) -> Member:
        member = await self.get_member(user_id)
        if member is None:
            raise RecordNotFoundError(f"Member {user_id} not found")
        return member

    async def get_member_status(self, user_id: str) -> MemberStatus:
        member = await self.get_member(user_id)
        if member is None:
            return MemberStatus.NONE
        return MemberStatus(member.status)

    async def request_access(self, user_id: str, email: Optional[str], name: str) -> MemberStatus:
        """
        Ask to join the club.

        Already known users keep their current status.

        Returns:
            The user's membership status after the request
        """
        status = await self.get_member_status(user_id)
        if status != MemberStatus.NONE:
            logger.debug(f"Access request ignored for {user_id}: already {status.value}")
            return status

        name = sanitize_text(name, MAX_NAME_LENGTH)
        if not name:
            raise ValidationError("A name is required to request access")
        try:
            member = Member(
                user_id=user_id,
                name=name,
                email=email or None,
                status=MemberStatus.PENDING,
                requested_at=utc_now(),
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid access request: {e}") from e

        await self.store.insert(
            MEMBERS_TABLE,
            member.model_dump(mode="json", exclude_none=True),
            on_conflict=MEMBER_KEY,
            ignore_duplicates=True,
        )
        logger.info(f"Access requested by {user_id} ({name})")
        return MemberStatus.PENDING

    async def approve_member(self, user_id: str) -> Member:
        updated = await self.store.update(
            MEMBERS_TABLE,
            {"user_id": user_id, "status": MemberStatus.PENDING},
            {"status": MemberStatus.APPROVED, "approved_at": utc_now().isoformat()},
        )
        if not updated:
            raise RecordNotFoundError(f"No pending request for {user_id}")
        logger.info(f"Member approved: {user_id}")
        return Member(**updated[0])

    async def reject_member(self, user_id: str) -> bool:
        deleted = await self.store.delete(
            MEMBERS_TABLE, {"user_id": user_id, "status": MemberStatus.PENDING}
        )
        if deleted:
            logger.info(f"Access request rejected: {user_id}")
        return bool(deleted)

    async def remove_member(self, user_id: str) -> bool:
        deleted = await self.store.delete(
            MEMBERS_TABLE, {"user_id": user_id, "status": MemberStatus.APPROVED}
        )
        if deleted:
            logger.info(f"Member removed: {user_id}")
        return bool(deleted)

    async def get_members(self) -> Dict[str, List[Member]]:
        """Pending requests and approved members, by name."""
        rows = await self.store.query(MEMBERS_TABLE, order_by=["name"])
        members = [Member(**row) for row in rows]
        return {
            MemberStatus.PENDING.value: [m for m in members if m.status == MemberStatus.PENDING],
            MemberStatus.APPROVED.value: [m for m in members if m.status == MemberStatus.APPROVED],
        }

    async def get_pending_count(self) -> int:
        rows = await self.store.query(MEMBERS_TABLE, {"status": MemberStatus.PENDING})
        return len(rows)

    async def get_all_approved_members(self) -> List[Member]:
        rows = await self.store.query(
            MEMBERS_TABLE, {"status": MemberStatus.APPROVED}, order_by=["name"]
        )
        return [Member(**row) for row in rows]

    async def set_license_type(self, user_id: str, license_type: Optional[LicenseType]) -> Member:
        value = LicenseType(license_type).value if license_type else None
        updated = await self.store.update(
            MEMBERS_TABLE, {"user_id": user_id}, {"license_type": value}
        )
        if not updated:
            raise RecordNotFoundError(f"Member {user_id} not found")
        return Member(**updated[0])

    async def rename_member(self, user_id: str, new_name: str) -> Member:
        """Rename a member everywhere, reservations and invitations included."""
        new_name = sanitize_text(new_name, MAX_NAME_LENGTH)
        if not new_name:
            raise ValidationError("Name cannot be empty")

        await self._require_member(user_id)
        updated = await self.store.update(MEMBERS_TABLE, {"user_id": user_id}, {"name": new_name})
        renamed = await self.booking.update_user_name_in_events(user_id, new_name)
        logger.info(f"Member {user_id} renamed ({renamed} booking row(s) updated)")
        return Member(**updated[0])
