"""
Document store abstraction with in-memory and SQLAlchemy implementations.

Documents are flat camelCase dicts. The store owns the ``id``,
``createdAt`` and ``updatedAt`` fields of every document.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional, Protocol

from sqlalchemy import JSON, Column, String, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class DocumentNotFound(Exception):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document {collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class DocumentExists(Exception):
    pass


@dataclass
class Query:
    """
    Filters, ordering and paging for ``DocumentStore.list``.

    ``equal`` maps a field to a value, or to a list of accepted values.
    ``contains_any`` matches array fields holding at least one of the values.
    ``search`` is a ``(field, text)`` case-insensitive substring match.
    """

    equal: Dict[str, Any] = field(default_factory=dict)
    contains_any: Dict[str, list] = field(default_factory=dict)
    search: Optional[tuple[str, str]] = None
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None
    offset: int = 0


@dataclass
class DocumentList:
    documents: list[dict]
    total: int


class DocumentStore(Protocol):
    """Interface for document database access."""

    def create(
        self, collection: str, data: dict, doc_id: str | None = None
    ) -> dict:
        ...

    def get(self, collection: str, doc_id: str) -> dict:
        ...

    def update(self, collection: str, doc_id: str, data: dict) -> dict:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def list(self, collection: str, query: Query | None = None) -> DocumentList:
        ...


_clock_lock = threading.Lock()
_last_timestamp: datetime | None = None


def now_timestamp() -> str:
    """ISO-8601 UTC timestamp, strictly increasing within the process."""
    global _last_timestamp
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if _last_timestamp is not None and now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
        return now.isoformat()


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


def _matches(doc: dict, query: Query) -> bool:
    for name, expected in query.equal.items():
        value = doc.get(name)
        if isinstance(expected, (list, tuple, set)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    for name, wanted in query.contains_any.items():
        values = doc.get(name) or []
        if not any(item in values for item in wanted):
            return False
    if query.search:
        name, text = query.search
        if text.lower() not in str(doc.get(name) or "").lower():
            return False
    return True


def apply_query(docs: Iterable[dict], query: Query | None) -> DocumentList:
    """Filters, sorts and pages candidate documents in insertion order."""
    query = query or Query()
    matched = [dict(doc) for doc in docs if _matches(doc, query)]
    if query.order_by:
        name = query.order_by
        matched.sort(
            key=lambda doc: (doc.get(name) is None, doc.get(name)),
            reverse=query.descending,
        )
    total = len(matched)
    start = max(0, query.offset or 0)
    end = start + query.limit if query.limit is not None else None
    return DocumentList(documents=matched[start:end], total=total)


class InMemoryDocumentStore:
    """Simple in-memory document database for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}

    def _collection(self, collection: str) -> Dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def create(
        self, collection: str, data: dict, doc_id: str | None = None
    ) -> dict:
        docs = self._collection(collection)
        doc_id = doc_id or new_document_id()
        if doc_id in docs:
            raise DocumentExists(f"Document {collection}/{doc_id} already exists")
        now = now_timestamp()
        doc = {**data, "id": doc_id, "createdAt": now, "updatedAt": now}
        docs[doc_id] = doc
        return dict(doc)

    def get(self, collection: str, doc_id: str) -> dict:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            raise DocumentNotFound(collection, doc_id)
        return dict(doc)

    def update(self, collection: str, doc_id: str, data: dict) -> dict:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise DocumentNotFound(collection, doc_id)
        changes = {
            key: value
            for key, value in data.items()
            if key not in ("id", "createdAt", "updatedAt")
        }
        doc = {**docs[doc_id], **changes, "updatedAt": now_timestamp()}
        docs[doc_id] = doc
        return dict(doc)

    def delete(self, collection: str, doc_id: str) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise DocumentNotFound(collection, doc_id)
        del docs[doc_id]

    def list(self, collection: str, query: Query | None = None) -> DocumentList:
        return apply_query(self._collection(collection).values(), query)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.collections.clear()


class SqlDocumentStore:
    """
    SQLAlchemy-backed implementation storing each document as a JSON row.
    Accepts any SQLAlchemy URL (e.g., Postgres, or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("A database URL is required for SqlDocumentStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _to_document(row: "DocumentRow") -> dict:
        return {
            **(row.data or {}),
            "id": row.doc_id,
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }

    def create(
        self, collection: str, data: dict, doc_id: str | None = None
    ) -> dict:
        doc_id = doc_id or new_document_id()
        now = now_timestamp()
        with self.Session() as session:
            if session.get(DocumentRow, (collection, doc_id)):
                raise DocumentExists(
                    f"Document {collection}/{doc_id} already exists"
                )
            row = DocumentRow(
                collection=collection,
                doc_id=doc_id,
                data=dict(data),
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            return self._to_document(row)

    def get(self, collection: str, doc_id: str) -> dict:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            if not row:
                raise DocumentNotFound(collection, doc_id)
            return self._to_document(row)

    def update(self, collection: str, doc_id: str, data: dict) -> dict:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            if not row:
                raise DocumentNotFound(collection, doc_id)
            changes = {
                key: value
                for key, value in data.items()
                if key not in ("id", "createdAt", "updatedAt")
            }
            row.data = {**(row.data or {}), **changes}
            row.updated_at = now_timestamp()
            session.commit()
            return self._to_document(row)

    def delete(self, collection: str, doc_id: str) -> None:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            if not row:
                raise DocumentNotFound(collection, doc_id)
            session.delete(row)
            session.commit()

    def list(self, collection: str, query: Query | None = None) -> DocumentList:
        with self.Session() as session:
            stmt = (
                select(DocumentRow)
                .where(DocumentRow.collection == collection)
                .order_by(DocumentRow.created_at.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return apply_query((self._to_document(row) for row in rows), query)


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    doc_id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
    created_at = Column(String, nullable=False, index=True)
    updated_at = Column(String, nullable=False)
