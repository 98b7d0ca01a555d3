"""
Record Store

Boundary between the analytics core and the backing document store.
Raw documents are normalized into LoadRecord / SubscriptionRecord here.
"""

from loadrush_analytics.store.base import (
    Document,
    Filter,
    NotFoundError,
    Query,
    RecordStore,
    StoreError,
    Subscription,
    status_in,
)
from loadrush_analytics.store.records import (
    ACTIVE_STATUSES,
    LoadRecord,
    LoadStatus,
    SubscriptionRecord,
    normalize_status,
    parse_timestamp,
)
from loadrush_analytics.store.memory import MemoryRecordStore

__all__ = [
    "ACTIVE_STATUSES",
    "Document",
    "Filter",
    "LoadRecord",
    "LoadStatus",
    "MemoryRecordStore",
    "NotFoundError",
    "Query",
    "RecordStore",
    "StoreError",
    "Subscription",
    "SubscriptionRecord",
    "normalize_status",
    "parse_timestamp",
    "status_in",
]
