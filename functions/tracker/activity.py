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

"""Activity log writes and the get-activity function."""

import json
from typing import Optional

from backend.store import DocumentStore, Query
from shared.api import PaginatedResult
from shared.constants import (
    ACTIVITY_LOGS_COLLECTION,
    DEFAULT_ACTIVITY_LIMIT,
    MAX_PAGE_LIMIT,
    PROJECT_MEMBERS_COLLECTION,
    UNKNOWN_USER_NAME,
)
from shared.errors import ValidationError
from shared.json_utils import to_document
from shared.types import ActivityLog
from tracker.lookups import list_all, user_summary
from tracker.permissions import require_member
from tracker.registry import FunctionContext, tracker_function
from tracker.validation import (
    clamp_limit,
    clamp_offset,
    is_valid_id,
    require_id,
    sanitize_for_json,
)


def record_activity(
    store: DocumentStore,
    *,
    project_id: str,
    user_id: str,
    action: str,
    details: dict,
    ticket_id: Optional[str] = None,
) -> dict:
    """Writes an audit entry; string values in `details` are HTML-escaped."""
    entry = ActivityLog(
        project_id=project_id,
        user_id=user_id,
        action=action,
        details=json.dumps(sanitize_for_json(details)),
        ticket_id=ticket_id,
    )
    return store.create(ACTIVITY_LOGS_COLLECTION, to_document(entry))


def parse_details(details) -> dict:
    if isinstance(details, dict):
        return details
    if not details:
        return {}
    try:
        parsed = json.loads(details)
    except (TypeError, json.JSONDecodeError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _member_profiles(store: DocumentStore, project_id: str) -> dict:
    members = list_all(
        store, PROJECT_MEMBERS_COLLECTION, Query(equal={"projectId": project_id})
    )
    return {
        member["userId"]: {
            "id": member["userId"],
            "name": member.get("userName") or UNKNOWN_USER_NAME,
            "email": member.get("userEmail") or "",
        }
        for member in members
    }


@tracker_function("get-activity", failure_message="Failed to fetch activity")
def get_activity(ctx: FunctionContext, body: dict) -> dict:
    project_id = require_id(body.get("projectId"), "project")
    require_member(ctx.store, project_id, ctx.user_id)

    equal = {"projectId": project_id}
    ticket_id = body.get("ticketId")
    if ticket_id:
        if not is_valid_id(ticket_id):
            raise ValidationError("Invalid ticket ID format")
        equal["ticketId"] = ticket_id

    result = ctx.store.list(
        ACTIVITY_LOGS_COLLECTION,
        Query(
            equal=equal,
            order_by="createdAt",
            descending=True,
            limit=clamp_limit(body.get("limit"), DEFAULT_ACTIVITY_LIMIT, MAX_PAGE_LIMIT),
            offset=clamp_offset(body.get("offset")),
        ),
    )

    profiles = _member_profiles(ctx.store, project_id)
    documents = [
        {
            **entry,
            "details": parse_details(entry.get("details")),
            "user": profiles.get(entry.get("userId"))
            or user_summary(ctx.users, entry.get("userId")),
        }
        for entry in result.documents
    ]
    return PaginatedResult(documents=documents, total=result.total).to_dict()
