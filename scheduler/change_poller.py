"""
Change poller using APScheduler.
Re-queries the watched tables on an interval and publishes a refresh
event when their contents changed outside this process.
"""

import hashlib
import json
from typing import Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import Settings
from config import settings as default_settings
from db.store import Row, Store
from events.change_feed import ChangeAction, ChangeFeed
from utils.exceptions import StoreError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="scheduler.log")

POLL_JOB_ID = "poll_changes"


def fingerprint(rows: List[Row]) -> str:
    """Order-independent digest of a table's rows."""
    encoded = sorted(json.dumps(row, sort_keys=True, default=str) for row in rows)
    return hashlib.sha256("\n".join(encoded).encode("utf-8")).hexdigest()


class ChangePoller:
    """Publishes `refresh` events on `feed` for tables that changed."""

    def __init__(
        self,
        store: Store,
        feed: ChangeFeed,
        settings: Optional[Settings] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.store = store
        self.feed = feed
        self.settings = settings or default_settings
        self.scheduler = scheduler or AsyncIOScheduler()
        self._fingerprints: Dict[str, str] = {}

    async def poll_once(self) -> List[str]:
        """
        Check every table that has subscribers.

        The first look at a table only records its fingerprint. A table
        that cannot be read is skipped until the next run.

        Returns:
            Tables for which a refresh event was published
        """
        changed = []
        for table in self.feed.watched_tables():
            try:
                rows = await self.store.query(table)
            except StoreError as e:
                logger.warning(f"Polling {table} failed: {e}")
                continue

            digest = fingerprint(rows)
            previous = self._fingerprints.get(table)
            self._fingerprints[table] = digest
            if previous is not None and previous != digest:
                self.feed.notify(table, ChangeAction.REFRESH, len(rows))
                changed.append(table)

        for table in set(self._fingerprints) - set(self.feed.watched_tables()):
            del self._fingerprints[table]

        if changed:
            logger.debug(f"External changes detected in: {', '.join(changed)}")
        return changed

    def start(self) -> None:
        """Schedule the polling job and start the scheduler."""
        self.scheduler.add_job(
            self.poll_once,
            trigger=IntervalTrigger(seconds=self.settings.change_poll_seconds),
            id=POLL_JOB_ID,
            name="Poll watched tables for external changes",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Change poller started (every {self.settings.change_poll_seconds}s)")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Change poller stopped")
