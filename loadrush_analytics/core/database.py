"""
PostgreSQL Database

Simple SQLAlchemy session factory and the document table that backs
SqlRecordStore. Each row is one record of a named collection.
"""

from datetime import datetime, timezone

from sqlalchemy import create_engine, Column, String, DateTime, JSON
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class DocumentRow(Base):
    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    doc_id = Column(String(128), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class Database:
    def __init__(self, url: str, **engine_kwargs):
        self.engine = create_engine(url, pool_pre_ping=True, **engine_kwargs)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self):
        Base.metadata.create_all(self.engine)

    def session(self):
        return self.Session()
