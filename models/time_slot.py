"""Catalog models for the daily 30-minute slot grid."""

from datetime import time

from pydantic import BaseModel, ConfigDict, Field


class TimeSlot(BaseModel):
    """One bookable base slot of the daily grid (e.g. "18:30")."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description='Slot key, e.g. "8:00"')
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(..., ge=0, le=59)

    @property
    def start(self) -> time:
        return time(self.hour, self.minute)

    @property
    def minutes(self) -> int:
        """Minutes since midnight."""
        return self.hour * 60 + self.minute


class DurationOption(BaseModel):
    """A booking length expressed in consecutive base slots."""

    model_config = ConfigDict(frozen=True)

    slots: int = Field(..., ge=1, le=8)
    minutes: int
    label: str
