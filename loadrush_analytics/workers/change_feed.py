"""
Change Feed

Writers in other processes (the mobile backend, upload jobs, scripts)
publish {"collection": "loads", "docId": "..."} to the changes topic.
Each event re-runs the live queries on that collection.
"""

from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.core.metrics import metrics
from loadrush_analytics.store.base import RecordStore

logger = get_logger("worker.change_feed", labels={"component": "change-feed"})

WATCHED_COLLECTIONS = frozenset({"loads", "subscriptions"})


class ChangeFeed:
    def __init__(self, store: RecordStore, collections=WATCHED_COLLECTIONS):
        self.store = store
        self.collections = frozenset(collections)

    async def handle(self, event: dict) -> None:
        collection = event.get("collection") if isinstance(event, dict) else None
        if collection not in self.collections:
            logger.debug(f"Ignoring change event: {event!r}")
            return
        metrics.change_events_consumed.labels(collection=collection).inc()
        self.store.refresh(collection)
