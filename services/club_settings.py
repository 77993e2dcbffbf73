"""Club key/value settings, read on demand from the store."""

import logging
from typing import Optional

from config import Settings
from db.store import Store
from utils.constants import SETTING_KEY, SETTINGS_TABLE, TOTAL_TABLES_SETTING
from utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ClubSettings:
    """Access to the `settings` collection and the venue capacity."""

    def __init__(self, store: Store, settings: Settings):
        self.store = store
        self.settings = settings

    async def get_setting(self, key: str) -> Optional[str]:
        rows = await self.store.query(SETTINGS_TABLE, {"key": key})
        if not rows:
            return None
        return rows[0].get("value")

    async def update_setting(self, key: str, value: str) -> None:
        await self.store.upsert(
            SETTINGS_TABLE, {"key": key, "value": str(value)}, on_conflict=SETTING_KEY
        )
        logger.info(f"Setting {key} updated to {value}")

    async def get_total_tables(self) -> int:
        """Number of tables, falling back to the configured default."""
        raw = await self.get_setting(TOTAL_TABLES_SETTING)
        if raw is None:
            return self.settings.default_total_tables
        try:
            tables = int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid {TOTAL_TABLES_SETTING} setting: {raw!r}")
            return self.settings.default_total_tables
        return tables if tables > 0 else self.settings.default_total_tables

    async def set_total_tables(self, tables: int) -> None:
        if tables < 1:
            raise ValidationError("A club needs at least one table")
        await self.update_setting(TOTAL_TABLES_SETTING, str(tables))

    async def get_max_persons(self) -> int:
        return await self.get_total_tables() * self.settings.persons_per_table
