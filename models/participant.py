"""
Participants of a slot: reservation owners and invited guests.
Derived from reservations and invitations, never persisted.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from models.invitation import InvitationStatus


class Owner(BaseModel):
    """Member holding a reservation on the slot (always accepted)."""

    kind: Literal["owner"] = "owner"
    user_id: str
    user_name: Optional[str] = None
    duration: int = 1

    @property
    def is_accepted(self) -> bool:
        return True


class Guest(BaseModel):
    """Member invited to the slot by a reservation owner."""

    kind: Literal["guest"] = "guest"
    user_id: str
    user_name: Optional[str] = None
    status: InvitationStatus = InvitationStatus.PENDING
    invited_by: Optional[str] = None

    @property
    def is_accepted(self) -> bool:
        return self.status == InvitationStatus.ACCEPTED


Participant = Annotated[Union[Owner, Guest], Field(discriminator="kind")]


class Roster(BaseModel):
    """Participants of one slot with the venue capacity."""

    participants: List[Participant] = Field(default_factory=list)
    max_persons: int

    @property
    def accepted_count(self) -> int:
        return sum(1 for p in self.participants if p.is_accepted)

    @property
    def pending_count(self) -> int:
        return len(self.participants) - self.accepted_count

    @property
    def overbooked(self) -> bool:
        """Advisory flag: more accepted participants than the tables allow."""
        return self.accepted_count > self.max_persons

    def includes(self, user_id: str) -> bool:
        return any(p.user_id == user_id for p in self.participants)
