"""Ad-hoc opened slots granted by the room administrators."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SlotTarget(str, Enum):
    """License-type restriction of a bookable slot."""

    ALL = "all"
    LOISIR = "loisir"  # leisure license (L)
    COMPETITION = "competition"  # competition license (C)


class OpenedSlot(BaseModel):
    """A base slot opened outside any template configuration."""

    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    date: date
    slot_id: str
    opened_by: Optional[str] = Field(default=None, description="Admin user ID")
    target: SlotTarget = SlotTarget.ALL
