# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""Lookup helpers shared by the tracker functions."""

import logging
from typing import Iterable, Optional

from backend.store import DocumentNotFound, DocumentStore, Query
from backend.users import UserDirectory
from shared.constants import LIST_BATCH_SIZE, UNKNOWN_USER_NAME
from shared.errors import NotFoundError

logger = logging.getLogger(__name__)


def get_or_404(store: DocumentStore, collection: str, doc_id: str, label: str) -> dict:
    try:
        return store.get(collection, doc_id)
    except DocumentNotFound:
        raise NotFoundError(f"{label} not found")


def list_all(store: DocumentStore, collection: str, query: Query) -> list[dict]:
    """Pages through every matching document in fixed-size batches."""
    documents = []
    offset = 0
    while True:
        batch = store.list(
            collection,
            Query(
                equal=query.equal,
                contains_any=query.contains_any,
                search=query.search,
                order_by=query.order_by,
                descending=query.descending,
                limit=LIST_BATCH_SIZE,
                offset=offset,
            ),
        )
        documents.extend(batch.documents)
        if len(batch.documents) < LIST_BATCH_SIZE:
            return documents
        offset += LIST_BATCH_SIZE


def delete_matching(store: DocumentStore, collection: str, equal: dict) -> int:
    """Deletes every document matching the equality filters."""
    deleted = 0
    for doc in list_all(store, collection, Query(equal=equal)):
        store.delete(collection, doc["id"])
        deleted += 1
    return deleted


def user_summary(users: UserDirectory, uid: Optional[str]) -> Optional[dict]:
    """`{id, name, email}` for a user; an "Unknown" placeholder if lookup fails."""
    if not uid:
        return None
    try:
        user = users.get_user(uid)
    except Exception as e:
        logger.warning("User lookup failed for %s: %s", uid, e)
        user = None
    if user is None:
        return {"id": uid, "name": UNKNOWN_USER_NAME, "email": ""}
    return {"id": user.id, "name": user.name, "email": user.email}


def user_summaries(users: UserDirectory, uids: Iterable[Optional[str]]) -> dict:
    summaries = {}
    for uid in uids:
        if uid and uid not in summaries:
            summaries[uid] = user_summary(users, uid)
    return summaries
