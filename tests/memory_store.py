"""
In-memory Store used by the service tests.
Enforces the same uniqueness constraints as the database.
"""

import copy
import uuid
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from db.store import Between, Filters, Row, serialize_filters, serialize_value
from events.change_feed import ChangeAction, ChangeCallback, ChangeFeed, Subscription
from utils.constants import UNIQUE_KEYS
from utils.exceptions import DuplicateRecordError, StoreError


def _matches(row: Row, filters: Filters) -> bool:
    for column, expected in filters.items():
        value = row.get(column)
        if isinstance(expected, Between):
            if value is None:
                return False
            if expected.low is not None and value < expected.low:
                return False
            if expected.high is not None and value > expected.high:
                return False
        elif isinstance(expected, list):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class MemoryStore:
    """Dict-of-lists store with PostgREST-like semantics."""

    def __init__(self, changes: Optional[ChangeFeed] = None):
        self.tables: Dict[str, List[Row]] = {}
        self.changes = changes or ChangeFeed()
        self.calls: List[Tuple[str, str]] = []
        self.fail_on: Set[Tuple[str, str]] = set()

    # ========== Test Helpers ==========

    def rows(self, table: str) -> List[Row]:
        return copy.deepcopy(self.tables.get(table, []))

    def seed(self, table: str, rows: Union[Row, List[Row]]) -> List[Row]:
        """Insert rows without notifying subscribers."""
        created = []
        for row in self._prepare(rows):
            self.tables.setdefault(table, []).append(row)
            created.append(copy.deepcopy(row))
        return created

    def _check(self, action: str, table: str) -> None:
        self.calls.append((action, table))
        if (action, table) in self.fail_on:
            raise StoreError(f"Failed to {action} {table}: simulated outage")

    @staticmethod
    def _prepare(rows: Union[Row, List[Row]]) -> List[Row]:
        if isinstance(rows, dict):
            rows = [rows]
        prepared = []
        for row in rows:
            row = {k: serialize_value(v) for k, v in row.items()}
            row.setdefault("id", str(uuid.uuid4()))
            prepared.append(row)
        return prepared

    @staticmethod
    def _key(row: Row, columns: Sequence[str]) -> Tuple[Any, ...]:
        return tuple(row.get(c) for c in columns)

    def _find(self, table: str, columns: Sequence[str], key: Tuple[Any, ...]) -> Optional[Row]:
        for row in self.tables.get(table, []):
            if self._key(row, columns) == key:
                return row
        return None

    # ========== Store ==========

    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        self._check("query", table)
        filters = serialize_filters(filters)
        rows = [copy.deepcopy(r) for r in self.tables.get(table, []) if _matches(r, filters)]
        for column in reversed(list(order_by or ())):
            desc = column.startswith("-")
            name = column.lstrip("-")
            rows.sort(key=lambda r: (r.get(name) is None, r.get(name)), reverse=desc)
        return rows

    async def insert(
        self,
        table: str,
        rows: Union[Row, List[Row]],
        on_conflict: Optional[Sequence[str]] = None,
        ignore_duplicates: bool = False,
    ) -> List[Row]:
        self._check("insert", table)
        payload = self._prepare(rows)
        columns = tuple(on_conflict or UNIQUE_KEYS.get(table, ()))

        accepted: List[Row] = []
        seen = set()
        for row in payload:
            if columns:
                key = self._key(row, columns)
                if key in seen or self._find(table, columns, key) is not None:
                    if ignore_duplicates:
                        continue
                    # The whole batch fails, as in a single INSERT statement
                    raise DuplicateRecordError(f"Duplicate record in {table}: {key}")
                seen.add(key)
            accepted.append(row)

        self.tables.setdefault(table, []).extend(accepted)
        self.changes.notify(table, ChangeAction.INSERT, len(accepted))
        return copy.deepcopy(accepted)

    async def upsert(
        self, table: str, rows: Union[Row, List[Row]], on_conflict: Sequence[str]
    ) -> List[Row]:
        self._check("upsert", table)
        saved = []
        for row in self._prepare(rows):
            existing = self._find(table, on_conflict, self._key(row, on_conflict))
            if existing is not None:
                row["id"] = existing["id"]
                existing.update(row)
                saved.append(copy.deepcopy(existing))
            else:
                self.tables.setdefault(table, []).append(row)
                saved.append(copy.deepcopy(row))
        self.changes.notify(table, ChangeAction.UPDATE, len(saved))
        return saved

    async def update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        self._check("update", table)
        if not filters:
            raise StoreError(f"Refusing to update every row of {table}")
        filters = serialize_filters(filters)
        patch = {k: serialize_value(v) for k, v in patch.items()}

        updated = []
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(patch)
                updated.append(copy.deepcopy(row))
        if updated:
            self.changes.notify(table, ChangeAction.UPDATE, len(updated))
        return updated

    async def delete(self, table: str, filters: Filters) -> List[Row]:
        self._check("delete", table)
        if not filters:
            raise StoreError(f"Refusing to delete every row of {table}")
        filters = serialize_filters(filters)

        kept, deleted = [], []
        for row in self.tables.get(table, []):
            (deleted if _matches(row, filters) else kept).append(row)
        self.tables[table] = kept
        if deleted:
            self.changes.notify(table, ChangeAction.DELETE, len(deleted))
        return deleted

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        return self.changes.subscribe(table, callback)

    def unsubscribe(self, subscription: Subscription) -> None:
        self.changes.unsubscribe(subscription)
