"""
Template application onto concrete weeks.

Per week: materialize the template onto the week's dates, create the week
configuration if needed, then write slots and hours according to the merge
mode. Every written blocking slot evicts the reservations it covers.

Applying several templates is a priority chain: the first one overwrites,
the following ones merge, so the first template wins every conflict.
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from db.store import Store
from models.schedule import MergeMode, Template, WeekConfig, WeekHour, WeekSlot
from models.results import TemplateApplicationResult, WeekApplicationResult
from services.schedule import (
    contains_minutes,
    find_overlapping,
    materialize_hours,
    materialize_slots,
    normalize_week_start,
)
from services.templates import TemplateService
from services.time_grid import get_time_slot
from utils.constants import (
    RESERVATIONS_TABLE,
    TEMPLATE_NAME_SEPARATOR,
    WEEK_CONFIGS_TABLE,
    WEEK_HOURS_TABLE,
    WEEK_SLOTS_TABLE,
)
from utils.datetime_utils import parse_iso_date
from utils.exceptions import StoreError, ValidationError

logger = logging.getLogger(__name__)

EntryT = TypeVar("EntryT", WeekSlot, WeekHour)


def normalize_week_starts(week_starts: Iterable[Union[date, str]]) -> List[date]:
    """Mondays of the given weeks, deduplicated, in input order."""
    weeks: List[date] = []
    for value in week_starts:
        monday = normalize_week_start(parse_iso_date(value))
        if monday not in weeks:
            weeks.append(monday)
    return weeks


def plan_entries(
    new_entries: Sequence[EntryT], existing: Sequence[EntryT], mode: MergeMode
) -> Tuple[List[EntryT], List[EntryT], int]:
    """
    Decide what a merge mode writes for one kind of entry.

    Returns:
        (entries to write, existing entries to delete, skipped count)
    """
    if mode == MergeMode.OVERWRITE:
        return list(new_entries), list(existing), 0

    to_write: List[EntryT] = []
    to_delete: List[EntryT] = []
    skipped = 0
    for entry in new_entries:
        clashes = find_overlapping(entry, existing)
        if not clashes:
            to_write.append(entry)
        elif mode == MergeMode.MERGE:
            # The whole new entry is skipped, not only the overlapping part
            skipped += 1
        else:
            to_delete.extend(c for c in clashes if c not in to_delete)
            to_write.append(entry)
    return to_write, to_delete, skipped


class TemplateMerger:
    """Writes templates onto weeks."""

    def __init__(self, store: Store, templates: TemplateService):
        self.store = store
        self.templates = templates

    async def apply_template_to_weeks(
        self,
        template_id: str,
        week_starts: Iterable[Union[date, str]],
        mode: Union[MergeMode, str] = MergeMode.OVERWRITE,
    ) -> TemplateApplicationResult:
        """
        Apply one template to every given week.

        Store failures are logged and reported through `success`/`error`;
        weeks already written stay written.

        Raises:
            ValidationError: If the mode is unknown
        """
        mode = self._parse_mode(mode)
        weeks = normalize_week_starts(week_starts)
        result = TemplateApplicationResult(template_ids=[template_id])
        try:
            await self._apply(template_id, weeks, mode, result)
        except StoreError as e:
            logger.error(f"Applying template {template_id} failed: {e}", exc_info=True)
            result.success = False
            result.error = str(e)
        return result

    async def apply_multiple_templates_to_weeks(
        self,
        template_ids: Sequence[str],
        week_starts: Iterable[Union[date, str]],
    ) -> TemplateApplicationResult:
        """
        Apply templates in priority order: index 0 wins every conflict.

        Raises:
            ValidationError: If no template is given
        """
        if not template_ids:
            raise ValidationError("Select at least one template")

        weeks = normalize_week_starts(week_starts)
        result = TemplateApplicationResult(template_ids=list(template_ids))
        try:
            for position, template_id in enumerate(template_ids):
                mode = MergeMode.OVERWRITE if position == 0 else MergeMode.MERGE
                await self._apply(template_id, weeks, mode, result)
        except StoreError as e:
            logger.error(f"Applying templates {list(template_ids)} failed: {e}", exc_info=True)
            result.success = False
            result.error = str(e)
        return result

    @staticmethod
    def _parse_mode(mode: Union[MergeMode, str]) -> MergeMode:
        try:
            return MergeMode(mode)
        except ValueError as e:
            raise ValidationError(f"Unknown merge mode: {mode}") from e

    async def _apply(
        self,
        template_id: str,
        weeks: List[date],
        mode: MergeMode,
        result: TemplateApplicationResult,
    ) -> None:
        template = await self.templates.require_template(template_id)
        template_slots = await self.templates.get_template_slots(template_id)
        template_hours = await self.templates.get_template_hours(template_id)

        for week_start in weeks:
            week_result = await self._apply_week(
                template,
                materialize_slots(template_slots, week_start),
                materialize_hours(template_hours, week_start),
                week_start,
                mode,
            )
            result.weeks.append(week_result)

        logger.info(
            f"Template '{template.name}' applied to {len(weeks)} week(s) in {mode.value} mode"
        )

    async def _apply_week(
        self,
        template: Template,
        new_slots: List[WeekSlot],
        new_hours: List[WeekHour],
        week_start: date,
        mode: MergeMode,
    ) -> WeekApplicationResult:
        week_result = WeekApplicationResult(week_start=week_start, mode=mode)

        config = await self.templates.get_week_config(week_start)
        if config is None:
            config = await self._create_week_config(week_start, template.name)
            week_result.created = True
            existing_slots: List[WeekSlot] = []
            existing_hours: List[WeekHour] = []
            effective = MergeMode.OVERWRITE
        else:
            existing_slots = await self.templates.get_week_slots(config.id)
            existing_hours = await self.templates.get_week_hours(config.id)
            effective = mode
            await self._rename_week_config(config, template.name, mode)

        slots, stale_slots, week_result.skipped_slots = plan_entries(
            new_slots, existing_slots, effective
        )
        hours, stale_hours, week_result.skipped_hours = plan_entries(
            new_hours, existing_hours, effective
        )

        week_result.replaced_entries = await self._delete_entries(
            WEEK_SLOTS_TABLE, stale_slots
        ) + await self._delete_entries(WEEK_HOURS_TABLE, stale_hours)

        week_result.slots_written = await self._insert_entries(WEEK_SLOTS_TABLE, slots, config.id)
        week_result.hours_written = await self._insert_entries(WEEK_HOURS_TABLE, hours, config.id)

        if week_result.skipped_slots or week_result.skipped_hours:
            logger.debug(
                f"Week {week_start}: skipped {week_result.skipped_slots} slot(s) and "
                f"{week_result.skipped_hours} hour range(s) overlapping existing entries"
            )

        week_result.deleted_reservations = await self.evict_reservations(slots)
        return week_result

    async def _create_week_config(self, week_start: date, template_name: str) -> WeekConfig:
        row = WeekConfig(week_start=week_start, template_name=template_name)
        created = await self.store.insert(
            WEEK_CONFIGS_TABLE, row.model_dump(mode="json", exclude_none=True)
        )
        if not created:
            raise StoreError(f"Week configuration for {week_start} was not created")
        logger.info(f"Week {week_start} configured with '{template_name}'")
        return WeekConfig(**created[0])

    async def _rename_week_config(self, config: WeekConfig, template_name: str, mode: MergeMode) -> None:
        if mode == MergeMode.OVERWRITE or not config.template_name:
            name = template_name
        else:
            names = config.template_name.split(TEMPLATE_NAME_SEPARATOR)
            if template_name in names:
                return
            name = TEMPLATE_NAME_SEPARATOR.join(names + [template_name])

        if name != config.template_name:
            await self.store.update(WEEK_CONFIGS_TABLE, {"id": config.id}, {"template_name": name})

    async def _delete_entries(self, table: str, entries: Sequence[Union[WeekSlot, WeekHour]]) -> int:
        ids = [entry.id for entry in entries if entry.id]
        if not ids:
            return 0
        deleted = await self.store.delete(table, {"id": ids})
        return len(deleted)

    async def _insert_entries(
        self, table: str, entries: Sequence[Union[WeekSlot, WeekHour]], week_config_id: str
    ) -> int:
        rows = []
        for entry in entries:
            row = entry.model_dump(mode="json", exclude_none=True, exclude={"id"})
            row["week_config_id"] = week_config_id
            rows.append(row)
        if not rows:
            return 0
        created = await self.store.insert(table, rows)
        return len(created)

    async def evict_reservations(self, written_slots: Sequence[WeekSlot]) -> int:
        """
        Delete reservations covered by blocking slots.

        A reservation is covered when its slot start lies in the blocking
        slot's `[start, end)` on the same date. Course slots never evict.

        Returns:
            Number of reservations deleted
        """
        blocking: Dict[date, List[WeekSlot]] = {}
        for slot in written_slots:
            if slot.is_blocking:
                blocking.setdefault(slot.date, []).append(slot)
        if not blocking:
            return 0

        rows = await self.store.query(RESERVATIONS_TABLE, {"date": sorted(blocking)})
        doomed: List[str] = []
        for row in rows:
            day = parse_iso_date(row["date"])
            minutes = self._slot_minutes(row.get("slot_id"))
            if minutes is None:
                continue
            if any(contains_minutes(slot, minutes) for slot in blocking.get(day, [])):
                doomed.append(row["id"])

        if not doomed:
            return 0
        deleted = await self.store.delete(RESERVATIONS_TABLE, {"id": doomed})
        logger.info(f"Evicted {len(deleted)} reservation(s) covered by training slots")
        return len(deleted)

    @staticmethod
    def _slot_minutes(slot_id: Optional[str]) -> Optional[int]:
        try:
            return get_time_slot(slot_id).minutes
        except ValidationError:
            logger.warning(f"Reservation on unknown slot {slot_id!r} left in place")
            return None
