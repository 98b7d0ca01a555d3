"""
In-Memory Record Store

Process-local store with synchronous push notifications. Used for local
development, seeding demos and tests.
"""

import copy
import uuid
from collections import defaultdict
from typing import Optional

from loadrush_analytics.store.base import (
    Document,
    NotFoundError,
    RecordStore,
    apply_update,
)


class MemoryRecordStore(RecordStore):
    """
    Example:
        store = MemoryRecordStore()
        sub = store.subscribe(Query("loads"), lambda docs: print(len(docs)))  # prints 0
        store.add("loads", {"status": "posted", "price": 1200})               # prints 1
        sub.unsubscribe()
    """

    def __init__(self, collections: Optional[dict[str, dict[str, dict]]] = None):
        super().__init__()
        self._collections: dict[str, dict[str, dict]] = defaultdict(dict)
        for name, docs in (collections or {}).items():
            for doc_id, data in docs.items():
                self._collections[name][doc_id] = copy.deepcopy(data)

    def documents(self, collection: str) -> list[Document]:
        # Snapshot first; polled reads run off the event loop thread
        items = list(self._collections.get(collection, {}).items())
        return [Document(doc_id, copy.deepcopy(data)) for doc_id, data in items]

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        data = self._collections[collection].get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def add(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self._collections[collection][doc_id] = copy.deepcopy(data)
        self.refresh(collection)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        self._collections[collection][doc_id] = copy.deepcopy(data)
        self.refresh(collection)

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        existing = self._collections[collection].get(doc_id)
        if existing is None:
            raise NotFoundError(f"{collection}/{doc_id} does not exist", collection)
        self._collections[collection][doc_id] = apply_update(existing, copy.deepcopy(fields))
        self.refresh(collection)

    def delete(self, collection: str, doc_id: str) -> None:
        self._collections[collection].pop(doc_id, None)
        self.refresh(collection)
