"""
Template and week configuration CRUD.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from db.store import Between, Store
from models.schedule import Template, TemplateHour, TemplateSlot, WeekConfig, WeekHour, WeekSlot
from services.schedule import normalize_week_start
from utils.constants import (
    MAX_NAME_LENGTH,
    TEMPLATE_HOURS_TABLE,
    TEMPLATE_SLOTS_TABLE,
    TEMPLATES_TABLE,
    WEEK_CONFIGS_TABLE,
    WEEK_HOURS_TABLE,
    WEEK_SLOTS_TABLE,
)
from utils.datetime_utils import parse_iso_date
from utils.exceptions import RecordNotFoundError, ValidationError
from utils.validation import sanitize_text

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _row(model: BaseModel) -> Dict[str, Any]:
    """Store payload of a model, without unset ids."""
    return model.model_dump(mode="json", exclude_none=True)


def _build(model_cls: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    try:
        return model_cls(**data)
    except PydanticValidationError as e:
        raise ValidationError(str(e)) from e


class TemplateService:
    """Weekly templates, their slots and hours, and configured weeks."""

    def __init__(self, store: Store):
        self.store = store

    # ========== Templates ==========

    async def list_templates(self) -> List[Template]:
        rows = await self.store.query(TEMPLATES_TABLE, order_by=["name"])
        return [Template(**row) for row in rows]

    async def get_template(self, template_id: str) -> Optional[Template]:
        rows = await self.store.query(TEMPLATES_TABLE, {"id": template_id})
        return Template(**rows[0]) if rows else None

    async def require_template(self, template_id: str) -> Template:
        template = await self.get_template(template_id)
        if template is None:
            raise RecordNotFoundError(f"Template {template_id} not found")
        return template

    async def create_template(self, name: str, description: Optional[str] = None) -> Template:
        name = sanitize_text(name, MAX_NAME_LENGTH)
        if not name:
            raise ValidationError("Template name is required")
        template = Template(name=name, description=description)
        created = await self.store.insert(TEMPLATES_TABLE, _row(template))
        logger.info(f"Template created: {name}")
        return Template(**created[0]) if created else template

    async def update_template(
        self,
        template_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Template:
        patch: Dict[str, Any] = {}
        if name is not None:
            name = sanitize_text(name, MAX_NAME_LENGTH)
            if not name:
                raise ValidationError("Template name is required")
            patch["name"] = name
        if description is not None:
            patch["description"] = description
        if not patch:
            return await self.require_template(template_id)

        updated = await self.store.update(TEMPLATES_TABLE, {"id": template_id}, patch)
        if not updated:
            raise RecordNotFoundError(f"Template {template_id} not found")
        return Template(**updated[0])

    async def delete_template(self, template_id: str) -> bool:
        """Delete a template with its slots and hours."""
        await self.store.delete(TEMPLATE_SLOTS_TABLE, {"template_id": template_id})
        await self.store.delete(TEMPLATE_HOURS_TABLE, {"template_id": template_id})
        deleted = await self.store.delete(TEMPLATES_TABLE, {"id": template_id})
        if deleted:
            logger.info(f"Template deleted: {template_id}")
        return bool(deleted)

    # ========== Template Slots and Hours ==========

    async def get_template_slots(self, template_id: str) -> List[TemplateSlot]:
        rows = await self.store.query(
            TEMPLATE_SLOTS_TABLE,
            {"template_id": template_id},
            order_by=["day_of_week", "start_time"],
        )
        return [TemplateSlot(**row) for row in rows]

    async def get_template_hours(self, template_id: str) -> List[TemplateHour]:
        rows = await self.store.query(
            TEMPLATE_HOURS_TABLE,
            {"template_id": template_id},
            order_by=["day_of_week", "start_time"],
        )
        return [TemplateHour(**row) for row in rows]

    async def create_template_slot(self, slot: TemplateSlot) -> TemplateSlot:
        if not slot.template_id:
            raise ValidationError("A template slot needs its template_id")
        created = await self.store.insert(TEMPLATE_SLOTS_TABLE, _row(slot))
        return TemplateSlot(**created[0]) if created else slot

    async def update_template_slot(self, slot_id: str, **changes: Any) -> TemplateSlot:
        return await self._update_entry(TEMPLATE_SLOTS_TABLE, TemplateSlot, slot_id, changes)

    async def delete_template_slot(self, slot_id: str) -> bool:
        return bool(await self.store.delete(TEMPLATE_SLOTS_TABLE, {"id": slot_id}))

    async def create_template_hour(self, hour: TemplateHour) -> TemplateHour:
        if not hour.template_id:
            raise ValidationError("A template hour needs its template_id")
        created = await self.store.insert(TEMPLATE_HOURS_TABLE, _row(hour))
        return TemplateHour(**created[0]) if created else hour

    async def update_template_hour(self, hour_id: str, **changes: Any) -> TemplateHour:
        return await self._update_entry(TEMPLATE_HOURS_TABLE, TemplateHour, hour_id, changes)

    async def delete_template_hour(self, hour_id: str) -> bool:
        return bool(await self.store.delete(TEMPLATE_HOURS_TABLE, {"id": hour_id}))

    async def _update_entry(
        self, table: str, model_cls: Type[ModelT], entry_id: str, changes: Dict[str, Any]
    ) -> ModelT:
        """Validate the merged record (start < end) before patching it."""
        rows = await self.store.query(table, {"id": entry_id})
        if not rows:
            raise RecordNotFoundError(f"No {table} entry {entry_id}")

        merged = _build(model_cls, {**rows[0], **changes})
        patch = {k: v for k, v in _row(merged).items() if k in changes}
        if not patch:
            return merged

        updated = await self.store.update(table, {"id": entry_id}, patch)
        return model_cls(**updated[0]) if updated else merged

    # ========== Configured Weeks ==========

    async def get_configured_weeks(
        self,
        start: Optional[Union[date, str]] = None,
        end: Optional[Union[date, str]] = None,
    ) -> List[WeekConfig]:
        """Configured weeks whose Monday lies in `[start, end]`."""
        filters = {}
        if start is not None or end is not None:
            filters["week_start"] = Between(
                parse_iso_date(start) if start is not None else None,
                parse_iso_date(end) if end is not None else None,
            )
        rows = await self.store.query(WEEK_CONFIGS_TABLE, filters, order_by=["week_start"])
        return [WeekConfig(**row) for row in rows]

    async def get_week_config(self, week_start: Union[date, str]) -> Optional[WeekConfig]:
        week_start = normalize_week_start(parse_iso_date(week_start))
        rows = await self.store.query(WEEK_CONFIGS_TABLE, {"week_start": week_start})
        return WeekConfig(**rows[0]) if rows else None

    async def get_week_slots(self, week_config_id: str) -> List[WeekSlot]:
        rows = await self.store.query(
            WEEK_SLOTS_TABLE, {"week_config_id": week_config_id}, order_by=["date", "start_time"]
        )
        return [WeekSlot(**row) for row in rows]

    async def get_week_hours(self, week_config_id: str) -> List[WeekHour]:
        rows = await self.store.query(
            WEEK_HOURS_TABLE, {"week_config_id": week_config_id}, order_by=["date", "start_time"]
        )
        return [WeekHour(**row) for row in rows]

    async def delete_week_slot(self, slot_id: str) -> bool:
        return bool(await self.store.delete(WEEK_SLOTS_TABLE, {"id": slot_id}))

    async def delete_week_config(self, week_start: Union[date, str]) -> bool:
        """Remove a week's configuration; the week becomes unreservable again."""
        config = await self.get_week_config(week_start)
        if config is None:
            return False

        await self.store.delete(WEEK_SLOTS_TABLE, {"week_config_id": config.id})
        await self.store.delete(WEEK_HOURS_TABLE, {"week_config_id": config.id})
        await self.store.delete(WEEK_CONFIGS_TABLE, {"id": config.id})
        logger.info(f"Week configuration removed: {config.week_start}")
        return True
