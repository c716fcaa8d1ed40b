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

"""In-app notifications: best-effort fan-out and the manage-notifications function."""

import logging
from typing import Iterable

from backend.store import DocumentStore, Query
from shared.api import PaginatedResult
from shared.constants import (
    DEFAULT_NOTIFICATION_LIMIT,
    MAX_PAGE_LIMIT,
    NOTIFICATIONS_COLLECTION,
)
from shared.errors import PermissionDeniedError, ValidationError
from shared.json_utils import to_document
from shared.types import Notification, NotificationType
from tracker.lookups import get_or_404, list_all
from tracker.registry import FunctionContext, tracker_function
from tracker.validation import clamp_limit, clamp_offset, require_id

logger = logging.getLogger(__name__)


def notify_users(
    store: DocumentStore,
    user_ids: Iterable[str],
    *,
    project_id: str,
    type: str,
    title: str,
    message: str,
    action_url: str = "",
) -> int:
    """
    Creates one notification per recipient, attempting every recipient.

    A failed write is logged and skipped; it never fails the caller's
    request. Returns the number of notifications created.
    """
    created = 0
    for user_id in dict.fromkeys(user_ids):
        notification = Notification(
            user_id=user_id,
            project_id=project_id,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
        )
        try:
            store.create(NOTIFICATIONS_COLLECTION, to_document(notification))
            created += 1
        except Exception as e:
            logger.warning("Failed to notify user %s (%s): %s", user_id, type, e)
    return created


def ticket_url(project_id: str, ticket_id: str) -> str:
    return f"/projects/{project_id}/tickets/{ticket_id}"


def notify_ticket_assigned(
    store: DocumentStore, assignee_id: str, ticket: dict, ticket_key: str
) -> int:
    return notify_users(
        store,
        [assignee_id],
        project_id=ticket["projectId"],
        type=NotificationType.TICKET_ASSIGNED,
        title=f"Ticket assigned: {ticket_key}",
        message=f'You have been assigned to "{ticket["title"]}"',
        action_url=ticket_url(ticket["projectId"], ticket["id"]),
    )


def notify_member_added(store: DocumentStore, user_id: str, project: dict) -> int:
    return notify_users(
        store,
        [user_id],
        project_id=project["id"],
        type=NotificationType.MEMBER_ADDED,
        title="Added to project",
        message=f'You have been added to the project "{project["name"]}"',
        action_url=f"/projects/{project['id']}",
    )


def _owned_notification(ctx: FunctionContext, body: dict) -> dict:
    notification_id = require_id(body.get("notificationId"), "notification")
    notification = get_or_404(
        ctx.store, NOTIFICATIONS_COLLECTION, notification_id, "Notification"
    )
    if notification.get("userId") != ctx.user_id:
        raise PermissionDeniedError("You can only modify your own notifications")
    return notification


@tracker_function(
    "manage-notifications", failure_message="Failed to manage notifications"
)
def manage_notifications(ctx: FunctionContext, body: dict):
    action = body.get("action")

    if action == "list":
        result = ctx.store.list(
            NOTIFICATIONS_COLLECTION,
            Query(
                equal={"userId": ctx.user_id},
                order_by="createdAt",
                descending=True,
                limit=clamp_limit(
                    body.get("limit"), DEFAULT_NOTIFICATION_LIMIT, MAX_PAGE_LIMIT
                ),
                offset=clamp_offset(body.get("offset")),
            ),
        )
        result = PaginatedResult(documents=result.documents, total=result.total)
        return result.to_dict()

    if action == "unreadCount":
        result = ctx.store.list(
            NOTIFICATIONS_COLLECTION,
            Query(equal={"userId": ctx.user_id, "read": False}, limit=0),
        )
        return {"count": result.total}

    if action == "markRead":
        notification = _owned_notification(ctx, body)
        return ctx.store.update(
            NOTIFICATIONS_COLLECTION, notification["id"], {"read": True}
        )

    if action == "markAllRead":
        unread = list_all(
            ctx.store,
            NOTIFICATIONS_COLLECTION,
            Query(equal={"userId": ctx.user_id, "read": False}),
        )
        for notification in unread:
            ctx.store.update(
                NOTIFICATIONS_COLLECTION, notification["id"], {"read": True}
            )
        logger.info("Marked %d notifications read for user %s", len(unread), ctx.user_id)
        return {"updated": len(unread)}

    if action == "delete":
        notification = _owned_notification(ctx, body)
        ctx.store.delete(NOTIFICATIONS_COLLECTION, notification["id"])
        return {"deleted": True}

    raise ValidationError("Invalid action")
