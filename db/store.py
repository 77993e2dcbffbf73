"""
Store contract consumed by the booking services.

Filters map a column to:
- a scalar: equality
- a list/tuple/set: membership
- a `Between`: inclusive range (either bound may be omitted)
"""

from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from events.change_feed import ChangeCallback, Subscription

Row = Dict[str, Any]
Filters = Dict[str, Any]


@dataclass(frozen=True)
class Between:
    """Inclusive range filter."""

    low: Any = None
    high: Any = None


def serialize_value(value: Any) -> Any:
    """Convert python values to the JSON form stored in the database."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [serialize_value(v) for v in value]
    if isinstance(value, Between):
        return Between(serialize_value(value.low), serialize_value(value.high))
    return value


def serialize_filters(filters: Optional[Filters]) -> Filters:
    return {column: serialize_value(value) for column, value in (filters or {}).items()}


class Store(Protocol):
    """CRUD and change subscription over named collections."""

    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        ...

    async def insert(
        self,
        table: str,
        rows: Union[Row, List[Row]],
        on_conflict: Optional[Sequence[str]] = None,
        ignore_duplicates: bool = False,
    ) -> List[Row]:
        ...

    async def upsert(
        self, table: str, rows: Union[Row, List[Row]], on_conflict: Sequence[str]
    ) -> List[Row]:
        ...

    async def update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        ...

    async def delete(self, table: str, filters: Filters) -> List[Row]:
        ...

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        ...

    def unsubscribe(self, subscription: Subscription) -> None:
        ...
