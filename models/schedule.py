"""
Schedule models: reusable weekly templates and their materialization
onto concrete calendar weeks.
"""

from datetime import date, time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MergeMode(str, Enum):
    """How a template's entries interact with a week's existing entries."""

    OVERWRITE = "overwrite"
    MERGE = "merge"  # existing entries win
    MERGE_KEEP_NEW = "merge_keep_new"  # new entries win


class TimeRangeModel(BaseModel):
    """Base for every `[start_time, end_time)` record."""

    start_time: time
    end_time: time

    @model_validator(mode="after")
    def check_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class Template(BaseModel):
    """Named, reusable weekly schedule."""

    id: Optional[str] = None
    name: str
    description: Optional[str] = None


class TemplateSlot(TimeRangeModel):
    """Recurring slot of a template, keyed by day of week (0=Sunday)."""

    id: Optional[str] = None
    template_id: Optional[str] = None
    day_of_week: int = Field(..., ge=0, le=6)
    name: str
    coach: Optional[str] = None
    group_name: Optional[str] = None
    is_blocking: bool = True

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "day_of_week": 1,
                "start_time": "18:00",
                "end_time": "19:30",
                "name": "Entraînement jeunes",
                "coach": "Marc",
                "is_blocking": True,
            }
        }
    )


class TemplateHour(TimeRangeModel):
    """Opening-hour window of a template for one day of week."""

    id: Optional[str] = None
    template_id: Optional[str] = None
    day_of_week: int = Field(..., ge=0, le=6)


class WeekConfig(BaseModel):
    """One concrete Monday-start week that received one or more templates."""

    id: Optional[str] = None
    week_start: date
    template_name: Optional[str] = None


class WeekSlot(TimeRangeModel):
    """Date-stamped recurring slot materialized from a template."""

    id: Optional[str] = None
    week_config_id: Optional[str] = None
    date: date
    name: str
    coach: Optional[str] = None
    group_name: Optional[str] = None
    is_blocking: bool = True


class WeekHour(TimeRangeModel):
    """Date-stamped opening-hour window."""

    id: Optional[str] = None
    week_config_id: Optional[str] = None
    date: date
