"""
Load Status Updates

Writes a canonical status onto a load and stamps the lifecycle timestamp
the analytics pipelines read (acceptedAt on match, completedAt on
delivery).
"""

from datetime import datetime, timezone
from typing import Optional

from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.store.base import RecordStore
from loadrush_analytics.store.records import LoadStatus, normalize_status

logger = get_logger("ops.load_status", labels={"component": "load-status"})

STAMPS = {
    LoadStatus.MATCHED: "acceptedAt",
    LoadStatus.DELIVERED: "completedAt",
}


def update_load_status(store: RecordStore, load_id: str, new_status, now: Optional[datetime] = None) -> LoadStatus:
    """
    Raises ValueError for an unknown status; store errors propagate.
    """
    status = normalize_status(new_status)
    if status is None:
        raise ValueError(f"Unknown load status: {new_status!r}")

    now = now or datetime.now(timezone.utc)
    fields = {"status": status.value, "updatedAt": now}
    if status in STAMPS:
        fields[STAMPS[status]] = now

    store.update("loads", load_id, fields)
    logger.info(f"Load {load_id} status -> {status.value}", extra={"labels": {"load_id": load_id}})
    return status
