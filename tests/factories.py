"""
Row builders for seeding the memory store in tests.
"""

from datetime import date, time
from typing import List, Optional

from memory_store import MemoryStore
from models.member import LicenseType, Member, MemberStatus
from utils.constants import (
    INVITATIONS_TABLE,
    OPENED_SLOTS_TABLE,
    RESERVATIONS_TABLE,
    WEEK_CONFIGS_TABLE,
    WEEK_HOURS_TABLE,
    WEEK_SLOTS_TABLE,
)

# Wednesday; its week starts on 2024-06-03
TODAY = date(2024, 6, 5)
CURRENT_MONDAY = date(2024, 6, 3)
NEXT_MONDAY = date(2024, 6, 10)


def hm(value: str) -> time:
    hour, minute = value.split(":")
    return time(int(hour), int(minute))


def make_member(
    user_id: str = "u1",
    name: str = "Camille",
    license_type: Optional[LicenseType] = None,
) -> Member:
    return Member(
        user_id=user_id,
        name=name,
        status=MemberStatus.APPROVED,
        license_type=license_type,
    )


def seed_week(store: MemoryStore, week_start: date, template_name: str = "Semaine type") -> str:
    row = store.seed(WEEK_CONFIGS_TABLE, {"week_start": week_start, "template_name": template_name})
    return row[0]["id"]


def seed_week_slot(
    store: MemoryStore,
    config_id: str,
    day: date,
    start: str,
    end: str,
    name: str = "Entraînement",
    is_blocking: bool = True,
) -> dict:
    return store.seed(
        WEEK_SLOTS_TABLE,
        {
            "week_config_id": config_id,
            "date": day,
            "start_time": hm(start),
            "end_time": hm(end),
            "name": name,
            "is_blocking": is_blocking,
        },
    )[0]


def seed_week_hour(store: MemoryStore, config_id: str, day: date, start: str, end: str) -> dict:
    return store.seed(
        WEEK_HOURS_TABLE,
        {"week_config_id": config_id, "date": day, "start_time": hm(start), "end_time": hm(end)},
    )[0]


def seed_opened_slot(store: MemoryStore, day: date, slot_id: str, target: str = "all") -> dict:
    return store.seed(
        OPENED_SLOTS_TABLE,
        {"date": day, "slot_id": slot_id, "opened_by": "admin", "target": target},
    )[0]


def seed_reservations(
    store: MemoryStore, day: date, slot_id: str, count: int, prefix: str = "player"
) -> List[dict]:
    return store.seed(
        RESERVATIONS_TABLE,
        [
            {
                "slot_id": slot_id,
                "date": day,
                "user_id": f"{prefix}-{i}",
                "user_name": f"Player {i}",
                "duration": 1,
                "overbooked": False,
            }
            for i in range(count)
        ],
    )


def seed_invitation(
    store: MemoryStore,
    day: date,
    slot_id: str,
    user_id: str,
    invited_by: str,
    status: str = "pending",
) -> dict:
    return store.seed(
        INVITATIONS_TABLE,
        {
            "slot_id": slot_id,
            "date": day,
            "user_id": user_id,
            "user_name": user_id.title(),
            "status": status,
            "invited_by": invited_by,
        },
    )[0]
