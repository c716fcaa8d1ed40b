"""
User directory lookups backed by Firebase Auth or by the document store.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from firebase_admin import auth

from backend.store import DocumentNotFound, DocumentStore, Query
from shared.constants import USERS_COLLECTION
from shared.json_utils import from_document
from shared.types import UserRecord

logger = logging.getLogger(__name__)


class UserDirectory(Protocol):
    """Read-only access to registered users."""

    def get_user(self, uid: str) -> Optional[UserRecord]:
        ...

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        ...


class FirebaseUserDirectory:
    """Resolves users through the Firebase Auth admin API."""

    def __init__(self, app=None):
        self._app = app

    @staticmethod
    def _to_record(user) -> UserRecord:
        return UserRecord(
            id=user.uid,
            name=user.display_name or "",
            email=user.email or "",
        )

    def get_user(self, uid: str) -> Optional[UserRecord]:
        try:
            return self._to_record(auth.get_user(uid, app=self._app))
        except auth.UserNotFoundError:
            return None

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        try:
            return self._to_record(auth.get_user_by_email(email, app=self._app))
        except auth.UserNotFoundError:
            return None


class StoreUserDirectory:
    """Reads user profiles from the ``users`` collection of a document store."""

    def __init__(self, store: DocumentStore):
        self._store = store

    @staticmethod
    def _to_record(doc: dict) -> UserRecord:
        return from_document(
            UserRecord,
            {**doc, "name": doc.get("name") or "", "email": doc.get("email") or ""},
        )

    def get_user(self, uid: str) -> Optional[UserRecord]:
        try:
            return self._to_record(self._store.get(USERS_COLLECTION, uid))
        except DocumentNotFound:
            return None

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        result = self._store.list(
            USERS_COLLECTION, Query(equal={"email": email}, limit=1)
        )
        if not result.documents:
            return None
        return self._to_record(result.documents[0])

    def add_user(self, name: str, email: str, uid: str | None = None) -> UserRecord:
        doc = self._store.create(
            USERS_COLLECTION, {"name": name, "email": email}, doc_id=uid
        )
        logger.info("Registered user %s (%s)", doc["id"], email)
        return self._to_record(doc)
