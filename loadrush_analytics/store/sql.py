"""
SQL Record Store

Documents live in a single SQLAlchemy table (collection, doc_id, JSON data).
Live queries are re-run after every local write; writes made by other
processes reach subscribers through refresh(), driven by the Kafka change
feed (see workers.change_feed).
"""

import uuid
from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from loadrush_analytics.core.database import Database, DocumentRow
from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.store.base import (
    Document,
    NotFoundError,
    RecordStore,
    StoreError,
    apply_update,
)

logger = get_logger("store.sql", labels={"component": "sql-store"})


def to_json(value):
    """Make a document JSON-column safe (datetimes become ISO strings)."""
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class SqlRecordStore(RecordStore):
    def __init__(self, database: Database):
        super().__init__()
        self.db = database

    @classmethod
    def from_url(cls, url: str, create_tables: bool = True, **engine_kwargs) -> "SqlRecordStore":
        database = Database(url, **engine_kwargs)
        if create_tables:
            database.create_tables()
        return cls(database)

    @contextmanager
    def _session(self, collection: str):
        session = self.db.session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Store operation on {collection} failed: {e}", extra={"labels": {"collection": collection}})
            raise StoreError(str(e), collection) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def documents(self, collection: str) -> list[Document]:
        with self._session(collection) as session:
            rows = session.execute(
                select(DocumentRow).where(DocumentRow.collection == collection).order_by(DocumentRow.doc_id)
            ).scalars().all()
            return [Document(row.doc_id, dict(row.data or {})) for row in rows]

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._session(collection) as session:
            row = session.get(DocumentRow, (collection, doc_id))
            return dict(row.data) if row is not None else None

    def add(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        with self._session(collection) as session:
            session.add(DocumentRow(collection=collection, doc_id=doc_id, data=to_json(data)))
        self.refresh(collection)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        with self._session(collection) as session:
            session.merge(DocumentRow(collection=collection, doc_id=doc_id, data=to_json(data)))
        self.refresh(collection)

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        with self._session(collection) as session:
            row = session.get(DocumentRow, (collection, doc_id))
            if row is None:
                raise NotFoundError(f"{collection}/{doc_id} does not exist", collection)
            # Reassign so the JSON column is flagged dirty
            row.data = apply_update(dict(row.data or {}), to_json(fields))
        self.refresh(collection)


def open_store(url: str) -> SqlRecordStore:
    logger.info("Opening record store", extra={"labels": {"backend": url.split(":", 1)[0]}})
    return SqlRecordStore.from_url(url)
