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

"""Helpers shared by the tracker function tests."""

import dataclasses
import json
from typing import Optional

from backend.storage import InMemoryStorageClient
from backend.store import InMemoryDocumentStore
from backend.users import StoreUserDirectory
from shared.api import FunctionResponse
from shared.constants import PROJECT_MEMBERS_COLLECTION
from tracker.registry import FunctionContext, invoke

OWNER_ID = "owner-1"


def create_context(user_id: Optional[str] = OWNER_ID) -> FunctionContext:
    """A context over fresh in-memory store, directory and storage doubles."""
    store = InMemoryDocumentStore()
    return FunctionContext(
        store=store,
        users=StoreUserDirectory(store),
        storage=InMemoryStorageClient(),
        user_id=user_id,
    )


def as_user(ctx: FunctionContext, user_id: Optional[str]) -> FunctionContext:
    return dataclasses.replace(ctx, user_id=user_id)


def call(ctx: FunctionContext, name: str, body: Optional[dict] = None) -> FunctionResponse:
    return invoke(name, ctx, json.dumps(body) if body is not None else None)


def register_user(ctx: FunctionContext, uid: str, name: str = "", email: str = ""):
    return ctx.users.add_user(
        name or uid.title(), email or f"{uid}@example.com", uid=uid
    )


def create_project(ctx: FunctionContext, key: str = "WEB", name: str = "Website") -> dict:
    result = call(ctx, "create-project", {"name": name, "key": key})
    if not result.success:
        raise AssertionError(f"create-project failed: {result.error}")
    return result.data


def add_member(ctx: FunctionContext, project_id: str, user_id: str, role: str) -> dict:
    return ctx.store.create(
        PROJECT_MEMBERS_COLLECTION,
        {
            "projectId": project_id,
            "userId": user_id,
            "role": role,
            "userEmail": f"{user_id}@example.com",
            "userName": user_id,
        },
    )


def create_ticket(ctx: FunctionContext, project_id: str, **fields) -> dict:
    body = {
        "projectId": project_id,
        "title": "Fix the login page",
        "type": "bug",
        "priority": "high",
        **fields,
    }
    result = call(ctx, "create-ticket", body)
    if not result.success:
        raise AssertionError(f"create-ticket failed: {result.error}")
    return result.data
