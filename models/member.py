"""Club member models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class MemberStatus(str, Enum):
    """Membership status."""

    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"


class LicenseType(str, Enum):
    """Federation license held by a member."""

    LOISIR = "L"
    COMPETITION = "C"


class Member(BaseModel):
    """Club member model."""

    model_config = ConfigDict(use_enum_values=True)

    user_id: str = Field(..., description="Identity provider user ID")
    name: str
    email: Optional[EmailStr] = None
    status: MemberStatus = MemberStatus.PENDING
    license_type: Optional[LicenseType] = None
    is_admin: bool = False
    requested_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
