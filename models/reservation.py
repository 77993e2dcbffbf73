"""Reservation models: one row per occupied base slot."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Reservation(BaseModel):
    """A member's table reservation on one base slot."""

    id: Optional[str] = None
    slot_id: str
    date: date
    user_id: str
    user_name: Optional[str] = None
    duration: int = Field(default=1, ge=1, description="Base slots of the whole booking")
    overbooked: bool = Field(default=False, description="Snapshot at creation time")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "slot_id": "18:00",
                "date": "2024-06-10",
                "user_id": "uuid-here",
                "user_name": "Camille",
                "duration": 2,
                "overbooked": False,
            }
        }
    )


class ReservationCreate(BaseModel):
    """Reservation creation model."""

    slot_id: str
    date: date
    user_id: str
    user_name: Optional[str] = None
    duration: int = 1
    overbooked: bool = False
