"""
Supabase implementation of the booking store.
Generic CRUD over PostgREST tables plus change notification.

Row Level Security (RLS) Notes:
==============================
The booking core runs with the service_role key, which bypasses RLS.
Member-facing policies belong in the Supabase dashboard, e.g.:

-- Members manage their own reservations
CREATE POLICY "Members insert own reservations"
ON reservations FOR INSERT
WITH CHECK (auth.uid()::text = user_id);

-- Everyone signed in can read the planning
CREATE POLICY "Members read week slots"
ON week_slots FOR SELECT
USING (auth.role() = 'authenticated');

Uniqueness constraints the core relies on:
- reservations (slot_id, date, user_id)
- slot_invitations (slot_id, date, user_id)
- week_configs (week_start)
- opened_slots (date, slot_id)
"""

from typing import Any, List, Optional, Sequence, Union

from postgrest.exceptions import APIError
from supabase import Client as SupabaseClientType
from supabase import create_client

from config import Settings
from config import settings as default_settings
from db.store import Between, Filters, Row, serialize_filters, serialize_value
from events.change_feed import ChangeAction, ChangeCallback, ChangeFeed, Subscription
from utils.exceptions import DuplicateRecordError, StoreError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="store.log")

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"


class SupabaseClient:
    """
    Supabase database client wrapper.

    Every write publishes a ChangeEvent on `self.changes` once the
    request succeeded, so in-process consumers can re-query.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[SupabaseClientType] = None,
        changes: Optional[ChangeFeed] = None,
    ):
        self.settings = settings or default_settings
        if client is None:
            self.settings.validate_all_required()
            client = create_client(self.settings.supabase_url, self.settings.supabase_key)
        self.client: SupabaseClientType = client
        self.changes = changes or ChangeFeed()

    # ========== Query Helpers ==========

    @staticmethod
    def _apply_filters(query: Any, filters: Optional[Filters]) -> Any:
        for column, value in serialize_filters(filters).items():
            if isinstance(value, Between):
                if value.low is not None:
                    query = query.gte(column, value.low)
                if value.high is not None:
                    query = query.lte(column, value.high)
            elif isinstance(value, list):
                query = query.in_(column, value)
            elif value is None:
                query = query.is_(column, "null")
            else:
                query = query.eq(column, value)
        return query

    @staticmethod
    def _as_rows(rows: Union[Row, List[Row]]) -> List[Row]:
        if isinstance(rows, dict):
            rows = [rows]
        return [{k: serialize_value(v) for k, v in row.items()} for row in rows]

    def _store_error(self, action: str, table: str, e: Exception) -> StoreError:
        if isinstance(e, APIError) and e.code == UNIQUE_VIOLATION:
            return DuplicateRecordError(f"Duplicate record in {table}: {e}")
        logger.error(f"Failed to {action} {table}: {e}", exc_info=True)
        return StoreError(f"Failed to {action} {table}: {e}")

    # ========== CRUD ==========

    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        """Select rows of `table` matching `filters`."""
        try:
            query = self._apply_filters(self.client.table(table).select("*"), filters)
            for column in order_by or ():
                desc = column.startswith("-")
                query = query.order(column.lstrip("-"), desc=desc)
            response = query.execute()
            return list(response.data or [])
        except Exception as e:
            raise self._store_error("query", table, e) from e

    async def insert(
        self,
        table: str,
        rows: Union[Row, List[Row]],
        on_conflict: Optional[Sequence[str]] = None,
        ignore_duplicates: bool = False,
    ) -> List[Row]:
        """
        Insert one or many rows in a single request.

        With `ignore_duplicates`, rows clashing with the `on_conflict`
        unique key are skipped by the database instead of failing the batch.
        """
        payload = self._as_rows(rows)
        if not payload:
            return []

        try:
            if ignore_duplicates:
                query = self.client.table(table).upsert(
                    payload,
                    on_conflict=",".join(on_conflict or ()),
                    ignore_duplicates=True,
                )
            else:
                query = self.client.table(table).insert(payload)
            response = query.execute()
        except Exception as e:
            raise self._store_error("insert into", table, e) from e

        data = list(response.data or [])
        logger.debug(f"Inserted {len(data)}/{len(payload)} rows into {table}")
        self.changes.notify(table, ChangeAction.INSERT, len(data))
        return data

    async def upsert(
        self, table: str, rows: Union[Row, List[Row]], on_conflict: Sequence[str]
    ) -> List[Row]:
        """Insert rows, updating the existing row on a unique key clash."""
        payload = self._as_rows(rows)
        if not payload:
            return []

        try:
            response = (
                self.client.table(table)
                .upsert(payload, on_conflict=",".join(on_conflict))
                .execute()
            )
        except Exception as e:
            raise self._store_error("upsert into", table, e) from e

        data = list(response.data or [])
        self.changes.notify(table, ChangeAction.UPDATE, len(data))
        return data

    async def update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        """Update rows matching `filters`; returns the updated rows."""
        if not filters:
            raise StoreError(f"Refusing to update every row of {table}")

        try:
            query = self.client.table(table).update(self._as_rows(patch)[0])
            response = self._apply_filters(query, filters).execute()
        except Exception as e:
            raise self._store_error("update", table, e) from e

        data = list(response.data or [])
        if data:
            self.changes.notify(table, ChangeAction.UPDATE, len(data))
        return data

    async def delete(self, table: str, filters: Filters) -> List[Row]:
        """Delete rows matching `filters`; returns the deleted rows."""
        if not filters:
            raise StoreError(f"Refusing to delete every row of {table}")

        try:
            query = self.client.table(table).delete()
            response = self._apply_filters(query, filters).execute()
        except Exception as e:
            raise self._store_error("delete from", table, e) from e

        data = list(response.data or [])
        if data:
            self.changes.notify(table, ChangeAction.DELETE, len(data))
        return data

    # ========== Change Notification ==========

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        return self.changes.subscribe(table, callback)

    def unsubscribe(self, subscription: Subscription) -> None:
        self.changes.unsubscribe(subscription)
