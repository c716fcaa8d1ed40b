import unittest
from unittest.mock import MagicMock

from google.api_core import exceptions

from backend.firestore_store import FirestoreDocumentStore
from backend.store import (
    DocumentExists,
    DocumentNotFound,
    InMemoryDocumentStore,
    Query,
    SqlDocumentStore,
    apply_query,
)


class DocumentStoreContract:
    """Behaviour shared by every DocumentStore implementation."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()

    def test_create_assigns_metadata(self):
        doc = self.store.create("tickets", {"title": "First"})
        self.assertTrue(doc["id"])
        self.assertEqual(doc["createdAt"], doc["updatedAt"])
        self.assertEqual(self.store.get("tickets", doc["id"])["title"], "First")

    def test_create_with_existing_id(self):
        self.store.create("users", {"name": "A"}, doc_id="u1")
        with self.assertRaises(DocumentExists):
            self.store.create("users", {"name": "B"}, doc_id="u1")

    def test_update_merges_and_touches(self):
        doc = self.store.create("tickets", {"title": "First", "order": 1})
        updated = self.store.update(
            "tickets", doc["id"], {"order": 2, "createdAt": "ignored"}
        )
        self.assertEqual(updated["title"], "First")
        self.assertEqual(updated["order"], 2)
        self.assertEqual(updated["createdAt"], doc["createdAt"])
        self.assertGreater(updated["updatedAt"], doc["updatedAt"])

    def test_missing_documents(self):
        with self.assertRaises(DocumentNotFound):
            self.store.get("tickets", "missing")
        with self.assertRaises(DocumentNotFound):
            self.store.update("tickets", "missing", {"a": 1})
        with self.assertRaises(DocumentNotFound):
            self.store.delete("tickets", "missing")

    def test_delete(self):
        doc = self.store.create("tickets", {"title": "First"})
        self.store.delete("tickets", doc["id"])
        self.assertEqual(self.store.list("tickets").total, 0)

    def test_list_filters_sorts_and_pages(self):
        for number, status, labels in (
            (1, "todo", ["ui"]),
            (2, "done", ["api"]),
            (3, "todo", ["api", "ui"]),
            (4, "backlog", []),
        ):
            self.store.create(
                "tickets",
                {
                    "projectId": "p1",
                    "ticketNumber": number,
                    "status": status,
                    "labels": labels,
                    "title": f"Ticket {number} Login",
                },
            )
        self.store.create("tickets", {"projectId": "p2", "ticketNumber": 9})

        result = self.store.list(
            "tickets",
            Query(
                equal={"projectId": "p1", "status": ["todo", "done"]},
                order_by="ticketNumber",
                descending=True,
                limit=2,
            ),
        )
        self.assertEqual(result.total, 3)
        self.assertEqual([d["ticketNumber"] for d in result.documents], [3, 2])

        result = self.store.list(
            "tickets", Query(equal={"projectId": "p1"}, contains_any={"labels": ["ui"]})
        )
        self.assertEqual([d["ticketNumber"] for d in result.documents], [1, 3])

        result = self.store.list(
            "tickets", Query(search=("title", "ticket 4 login"), offset=0)
        )
        self.assertEqual([d["ticketNumber"] for d in result.documents], [4])

        result = self.store.list("tickets", Query(equal={"projectId": "p1"}, offset=3))
        self.assertEqual(len(result.documents), 1)
        self.assertEqual(result.total, 4)


class InMemoryDocumentStoreTests(DocumentStoreContract, unittest.TestCase):
    def make_store(self):
        return InMemoryDocumentStore()

    def test_returned_documents_are_copies(self):
        doc = self.store.create("tickets", {"title": "First"})
        doc["title"] = "Changed"
        self.assertEqual(self.store.get("tickets", doc["id"])["title"], "First")


class SqlDocumentStoreTests(DocumentStoreContract, unittest.TestCase):
    def make_store(self):
        return SqlDocumentStore("sqlite+pysqlite:///:memory:")

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            SqlDocumentStore("")


class ApplyQueryTests(unittest.TestCase):
    def test_missing_values_sort_last(self):
        docs = [{"id": "a", "due": None}, {"id": "b", "due": "2025-01-02"}, {"id": "c"}]
        result = apply_query(docs, Query(order_by="due"))
        self.assertEqual([d["id"] for d in result.documents], ["b", "a", "c"])

    def test_zero_limit_only_counts(self):
        result = apply_query([{"id": "a"}, {"id": "b"}], Query(limit=0))
        self.assertEqual(result.documents, [])
        self.assertEqual(result.total, 2)


class FirestoreDocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.store = FirestoreDocumentStore(self.client)

    def test_get_missing_document(self):
        snapshot = MagicMock(exists=False)
        self.client.collection.return_value.document.return_value.get.return_value = (
            snapshot
        )
        with self.assertRaises(DocumentNotFound):
            self.store.get("tickets", "missing")

    def test_create_conflict(self):
        doc_ref = self.client.collection.return_value.document.return_value
        doc_ref.create.side_effect = exceptions.AlreadyExists("exists")
        with self.assertRaises(DocumentExists):
            self.store.create("users", {"name": "A"}, doc_id="u1")

    def test_list_pushes_scalar_equality_to_firestore(self):
        collection = self.client.collection.return_value
        query = collection.where.return_value
        snapshots = []
        for doc_id, number, status in (("t1", 2, "todo"), ("t2", 1, "done")):
            snapshot = MagicMock(id=doc_id)
            snapshot.to_dict.return_value = {
                "projectId": "p1",
                "ticketNumber": number,
                "status": status,
                "createdAt": f"2025-01-0{number}",
            }
            snapshots.append(snapshot)
        query.stream.return_value = snapshots

        result = self.store.list(
            "tickets",
            Query(
                equal={"projectId": "p1", "status": ["todo", "done"]},
                order_by="ticketNumber",
            ),
        )

        self.assertEqual(collection.where.call_count, 1)
        self.assertEqual([d["id"] for d in result.documents], ["t2", "t1"])


if __name__ == "__main__":
    unittest.main()
