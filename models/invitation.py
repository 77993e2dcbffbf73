"""Guest invitation models."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class InvitationStatus(str, Enum):
    """Invitation status."""

    PENDING = "pending"
    ACCEPTED = "accepted"


class Invitation(BaseModel):
    """Invitation of a guest to a booking, anchored at its first slot."""

    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    slot_id: str
    date: date
    user_id: str
    user_name: Optional[str] = None
    status: InvitationStatus = InvitationStatus.PENDING
    invited_by: Optional[str] = None


class InvitationCreate(BaseModel):
    """Invitation creation model."""

    model_config = ConfigDict(use_enum_values=True)

    slot_id: str
    date: date
    user_id: str
    user_name: Optional[str] = None
    status: InvitationStatus = InvitationStatus.PENDING
    invited_by: Optional[str] = None
