"""
Firestore-backed document store used by the Cloud Functions deployment.
"""

from __future__ import annotations

from google.api_core import exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from backend.store import (
    DocumentExists,
    DocumentList,
    DocumentNotFound,
    Query,
    apply_query,
    new_document_id,
    now_timestamp,
)


class FirestoreDocumentStore:
    """
    Scalar equality filters run in Firestore; "any of" filters, array
    matches, text search, ordering and paging run on the streamed results.
    Firestore has no text-search operator and caps ``in`` filters at 30 values.
    """

    def __init__(self, client):
        self._db = client

    def _ref(self, collection: str, doc_id: str):
        return self._db.collection(collection).document(doc_id)

    def create(
        self, collection: str, data: dict, doc_id: str | None = None
    ) -> dict:
        doc_ref = self._ref(collection, doc_id or new_document_id())
        now = now_timestamp()
        payload = {**data, "createdAt": now, "updatedAt": now}
        try:
            doc_ref.create(payload)
        except exceptions.AlreadyExists as e:
            raise DocumentExists(str(e)) from e
        return {**payload, "id": doc_ref.id}

    def get(self, collection: str, doc_id: str) -> dict:
        snapshot = self._ref(collection, doc_id).get()
        if not snapshot.exists:
            raise DocumentNotFound(collection, doc_id)
        return {**snapshot.to_dict(), "id": snapshot.id}

    def update(self, collection: str, doc_id: str, data: dict) -> dict:
        changes = {
            key: value
            for key, value in data.items()
            if key not in ("id", "createdAt", "updatedAt")
        }
        changes["updatedAt"] = now_timestamp()
        try:
            self._ref(collection, doc_id).update(changes)
        except exceptions.NotFound as e:
            raise DocumentNotFound(collection, doc_id) from e
        return self.get(collection, doc_id)

    def delete(self, collection: str, doc_id: str) -> None:
        doc_ref = self._ref(collection, doc_id)
        if not doc_ref.get().exists:
            raise DocumentNotFound(collection, doc_id)
        doc_ref.delete()

    def list(self, collection: str, query: Query | None = None) -> DocumentList:
        query = query or Query()
        firestore_query = self._db.collection(collection)
        for name, value in query.equal.items():
            if name == "id" or isinstance(value, (list, tuple, set)):
                continue
            firestore_query = firestore_query.where(
                filter=FieldFilter(name, "==", value)
            )
        docs = [
            {**snapshot.to_dict(), "id": snapshot.id}
            for snapshot in firestore_query.stream()
        ]
        docs.sort(key=lambda doc: doc.get("createdAt") or "")
        return apply_query(docs, query)
