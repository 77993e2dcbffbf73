"""
Unit tests for the change poller.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from events.change_feed import ChangeFeed
from memory_store import MemoryStore
from scheduler.change_poller import POLL_JOB_ID, ChangePoller, fingerprint
from utils.constants import OPENED_SLOTS_TABLE, RESERVATIONS_TABLE
from utils.exceptions import StoreError


@pytest.fixture
def feed():
    return ChangeFeed()


def test_fingerprint_ignores_row_order():
    rows = [{"id": "a", "slot_id": "18:00"}, {"id": "b", "slot_id": "18:30"}]

    assert fingerprint(rows) == fingerprint(list(reversed(rows)))
    assert fingerprint(rows) != fingerprint(rows[:1])


@pytest.mark.asyncio
async def test_poll_publishes_refresh_on_external_change(test_settings, feed):
    # The poller reads through its own store; writes land in another one
    external = MemoryStore()
    poller = ChangePoller(external, feed, settings=test_settings, scheduler=MagicMock())
    received = []
    feed.subscribe(RESERVATIONS_TABLE, received.append)

    assert await poller.poll_once() == []

    external.seed(RESERVATIONS_TABLE, {"slot_id": "18:00", "date": "2024-06-10", "user_id": "u1"})

    assert await poller.poll_once() == [RESERVATIONS_TABLE]
    assert await poller.poll_once() == []
    assert [event.action for event in received] == ["refresh"]


@pytest.mark.asyncio
async def test_poll_only_watched_tables(test_settings, feed):
    store = MagicMock()
    store.query = AsyncMock(return_value=[])
    poller = ChangePoller(store, feed, settings=test_settings, scheduler=MagicMock())
    feed.subscribe(OPENED_SLOTS_TABLE, lambda event: None)

    await poller.poll_once()

    store.query.assert_called_once_with(OPENED_SLOTS_TABLE)


@pytest.mark.asyncio
async def test_poll_survives_store_errors(test_settings, feed):
    store = MagicMock()
    store.query = AsyncMock(side_effect=StoreError("down"))
    poller = ChangePoller(store, feed, settings=test_settings, scheduler=MagicMock())
    feed.subscribe(RESERVATIONS_TABLE, lambda event: None)

    assert await poller.poll_once() == []


def test_start_schedules_interval_job(test_settings, feed):
    scheduler = MagicMock()
    scheduler.running = False
    poller = ChangePoller(MemoryStore(), feed, settings=test_settings, scheduler=scheduler)

    poller.start()

    scheduler.add_job.assert_called_once()
    kwargs = scheduler.add_job.call_args.kwargs
    assert kwargs["id"] == POLL_JOB_ID
    assert kwargs["trigger"].interval.total_seconds() == 5
    scheduler.start.assert_called_once()


def test_shutdown(test_settings, feed):
    scheduler = MagicMock()
    scheduler.running = True
    poller = ChangePoller(MemoryStore(), feed, settings=test_settings, scheduler=scheduler)

    poller.shutdown()

    scheduler.shutdown.assert_called_once_with(wait=False)
