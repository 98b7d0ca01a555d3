"""
Record Store Interface

The analytics core only needs a handful of primitives from the backing
document store:

- fetch(query)                          one-shot read of a result set
- subscribe(query, on_snapshot, ...)    push notifications of full result sets
- add / set / update / get              write side used by uploads and scripts

Queries filter in-process over small collections (tens to low thousands of
documents), so every backend evaluates Filter.matches() the same way.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from loadrush_analytics.store.records import LoadStatus, normalize_status


class StoreError(Exception):
    """A read, write or subscription against the record store failed."""

    def __init__(self, message: str, collection: Optional[str] = None):
        super().__init__(message)
        self.collection = collection


class NotFoundError(StoreError):
    pass


@dataclass(frozen=True)
class Document:
    id: str
    data: dict


@dataclass(frozen=True)
class Filter:
    """
    A single field predicate.

    Example:
        Filter("role", "==", "driver")
        Filter("status", "in", ["active", "trial"])
    """
    field: str
    op: str
    value: Any

    def matches(self, data: dict) -> bool:
        actual = data.get(self.field)
        if self.op == "==":
            return actual == self.value
        if self.op == "in":
            return actual in self.value
        raise ValueError(f"Unknown operator: {self.op}")


@dataclass(frozen=True)
class StatusFilter(Filter):
    """Matches loads whose status normalizes to one of the given LoadStatus values."""

    def matches(self, data: dict) -> bool:
        return normalize_status(data.get(self.field)) in self.value


def status_in(*statuses: LoadStatus) -> StatusFilter:
    return StatusFilter("status", "status_in", frozenset(statuses))


@dataclass(frozen=True)
class Query:
    collection: str
    filters: tuple = field(default_factory=tuple)

    def where(self, field_name: str, op: str, value: Any) -> "Query":
        return Query(self.collection, self.filters + (Filter(field_name, op, value),))

    def matching(self, flt: Filter) -> "Query":
        return Query(self.collection, self.filters + (flt,))

    def matches(self, data: dict) -> bool:
        return all(f.matches(data) for f in self.filters)

    def apply(self, documents: Iterable[Document]) -> list[Document]:
        return [d for d in documents if self.matches(d.data)]


SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle returned by subscribe(). unsubscribe() is idempotent."""

    def __init__(self, query: Query, on_snapshot: SnapshotCallback,
                 on_error: Optional[ErrorCallback], cancel: Callable[["Subscription"], None]):
        self.query = query
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self._cancel = cancel
        self.active = True

    def unsubscribe(self):
        if not self.active:
            return
        self.active = False
        self._cancel(self)

    def deliver(self, documents: list[Document]):
        if self.active:
            self.on_snapshot(documents)

    def fail(self, error: Exception):
        if self.active and self.on_error:
            self.on_error(error)


class RecordStore(ABC):
    """Base class for record store backends."""

    def __init__(self):
        self._subscriptions: list[Subscription] = []

    @abstractmethod
    def documents(self, collection: str) -> list[Document]:
        """Return every document in a collection."""
        pass

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    def add(self, collection: str, data: dict) -> str:
        """Insert a new document with a generated id and return the id."""
        pass

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict) -> None:
        """Create or fully replace a document."""
        pass

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        """
        Merge fields into an existing document.

        Dotted keys ("pickup.location") update nested maps.
        Raises NotFoundError if the document does not exist.
        """
        pass

    def fetch(self, query: Query) -> list[Document]:
        return query.apply(self.documents(query.collection))

    def subscribe(self, query: Query, on_snapshot: SnapshotCallback,
                  on_error: Optional[ErrorCallback] = None) -> Subscription:
        """
        Register a live query. The current result set is delivered
        immediately, then again after every change to the collection.
        """
        subscription = Subscription(query, on_snapshot, on_error, self._remove_subscription)
        self._subscriptions.append(subscription)
        self._deliver(subscription)
        return subscription

    def refresh(self, collection: str) -> None:
        """Re-run every live query on a collection and push the results."""
        for subscription in list(self._subscriptions):
            if subscription.query.collection == collection:
                self._deliver(subscription)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def _deliver(self, subscription: Subscription):
        try:
            documents = self.fetch(subscription.query)
        except Exception as e:
            subscription.fail(e)
            return
        subscription.deliver(documents)

    def _remove_subscription(self, subscription: Subscription):
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


def apply_update(data: dict, fields: dict) -> dict:
    """Return a copy of data with (possibly dotted) fields merged in."""
    merged = dict(data)
    for key, value in fields.items():
        parts = key.split(".")
        target = merged
        for part in parts[:-1]:
            child = target.get(part)
            child = dict(child) if isinstance(child, dict) else {}
            target[part] = child
            target = child
        target[parts[-1]] = value
    return merged
