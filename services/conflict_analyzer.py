"""Read-only preview of what applying a template would collide with."""

import logging
from datetime import date
from typing import Iterable, List, Sequence, Union

from models.results import ConflictReport, SlotConflict
from models.schedule import WeekHour, WeekSlot
from services.schedule import find_overlapping, materialize_hours, materialize_slots
from services.template_merger import normalize_week_starts
from services.templates import TemplateService

logger = logging.getLogger(__name__)


def find_conflicts(
    week_start: date,
    kind: str,
    new_entries: Sequence[Union[WeekSlot, WeekHour]],
    existing: Sequence[Union[WeekSlot, WeekHour]],
) -> List[SlotConflict]:
    """Every (new, existing) pair the merger would treat as overlapping."""
    return [
        SlotConflict(week_start=week_start, kind=kind, new_entry=entry, existing_entry=clash)
        for entry in new_entries
        for clash in find_overlapping(entry, existing)
    ]


class ConflictAnalyzer:
    """Compares a template against already configured weeks. Never writes."""

    def __init__(self, templates: TemplateService):
        self.templates = templates

    async def analyze(
        self, template_id: str, week_starts: Iterable[Union[date, str]]
    ) -> ConflictReport:
        await self.templates.require_template(template_id)
        template_slots = await self.templates.get_template_slots(template_id)
        template_hours = await self.templates.get_template_hours(template_id)

        report = ConflictReport(template_id=template_id)
        for week_start in normalize_week_starts(week_starts):
            config = await self.templates.get_week_config(week_start)
            if config is None:
                continue
            report.configured_weeks.append(week_start)

            existing_slots = await self.templates.get_week_slots(config.id)
            existing_hours = await self.templates.get_week_hours(config.id)
            report.conflicts.extend(
                find_conflicts(
                    week_start, "slot", materialize_slots(template_slots, week_start), existing_slots
                )
            )
            report.conflicts.extend(
                find_conflicts(
                    week_start, "hour", materialize_hours(template_hours, week_start), existing_hours
                )
            )

        logger.debug(
            f"Template {template_id}: {len(report.conflicts)} conflict(s) over "
            f"{len(report.configured_weeks)} configured week(s)"
        )
        return report
