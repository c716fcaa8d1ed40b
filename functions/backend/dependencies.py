"""
Dependency wiring for the Cloud Functions and the FastAPI app.
"""

from __future__ import annotations

from backend.config import get_settings
from backend.storage import (
    FirebaseStorageClient,
    InMemoryStorageClient,
    S3StorageClient,
    StorageClient,
)
from backend.store import DocumentStore, InMemoryDocumentStore, SqlDocumentStore
from backend.users import FirebaseUserDirectory, StoreUserDirectory, UserDirectory

_document_store: DocumentStore | None = None
_user_directory: UserDirectory | None = None
_storage_client: StorageClient | None = None


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so state persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.store_backend == "firestore":
        from firebase_admin import firestore

        from backend.firestore_store import FirestoreDocumentStore

        _document_store = FirestoreDocumentStore(firestore.client())
    elif settings.store_backend == "sql":
        _document_store = SqlDocumentStore(settings.database_url)
    else:
        _document_store = InMemoryDocumentStore()
    return _document_store


def get_user_directory() -> UserDirectory:
    global _user_directory
    if _user_directory:
        return _user_directory

    settings = get_settings()
    if settings.store_backend == "firestore":
        _user_directory = FirebaseUserDirectory()
    else:
        _user_directory = StoreUserDirectory(get_document_store())
    return _user_directory


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.storage_backend == "firebase":
        _storage_client = FirebaseStorageClient(settings.storage_bucket)
    elif settings.storage_backend == "s3" and settings.storage_bucket:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.s3_access_key_id or "",
            secret_access_key=settings.s3_secret_access_key or "",
        )
    else:
        _storage_client = InMemoryStorageClient()
    return _storage_client


def reset_dependencies() -> None:
    """Drop cached clients; the next lookup rebuilds them from settings."""
    global _document_store, _user_directory, _storage_client
    _document_store = None
    _user_directory = None
    _storage_client = None
