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

"""Ticket comments and threaded replies: the manage-comments function."""

import logging

from shared.api import PaginatedResult
from shared.constants import COMMENTS_COLLECTION, TICKETS_COLLECTION, UNKNOWN_USER_NAME
from shared.errors import NotFoundError, PermissionDeniedError, ValidationError
from shared.json_utils import to_document
from shared.types import ActivityAction, Comment, NotificationType
from backend.store import DocumentNotFound, Query
from tracker.activity import record_activity
from tracker.lookups import get_or_404, list_all, user_summaries, user_summary
from tracker.notifications import notify_users, ticket_url
from tracker.permissions import (
    CAN_COMMENT,
    CAN_DELETE_TICKETS,
    get_user_project_role,
    has_permission,
    require_member,
    require_permission,
)
from tracker.registry import FunctionContext, tracker_function
from tracker.validation import (
    content_error,
    is_valid_id,
    raise_for_errors,
    require_id,
    sanitize_string,
    validate_comment,
)

logger = logging.getLogger(__name__)


def _list_comments(ctx: FunctionContext, body: dict) -> dict:
    ticket_id = require_id(body.get("ticketId"), "ticket")
    ticket = get_or_404(ctx.store, TICKETS_COLLECTION, ticket_id, "Ticket")
    require_member(ctx.store, ticket["projectId"], ctx.user_id)

    comments = list_all(
        ctx.store,
        COMMENTS_COLLECTION,
        Query(equal={"ticketId": ticket_id}, order_by="createdAt"),
    )
    people = user_summaries(ctx.users, [c.get("userId") for c in comments])
    documents = [
        {**comment, "user": people.get(comment.get("userId"))} for comment in comments
    ]
    return PaginatedResult(documents=documents, total=len(documents)).to_dict()


def _parent_comment(ctx: FunctionContext, ticket_id: str, parent_id) -> dict:
    if not isinstance(parent_id, str) or not is_valid_id(parent_id):
        raise ValidationError("Invalid parent comment ID format")
    try:
        parent = ctx.store.get(COMMENTS_COLLECTION, parent_id)
    except DocumentNotFound:
        raise NotFoundError("Parent comment not found")
    if parent.get("ticketId") != ticket_id:
        raise ValidationError("Parent comment does not belong to the same ticket")
    return parent


def _notify_comment(ctx: FunctionContext, ticket: dict, parent) -> int:
    """Notifies reporter, assignee and the replied-to author, never the caller."""
    recipients = [ticket.get("reporterId"), ticket.get("assigneeId")]
    if parent:
        recipients.append(parent.get("userId"))
    recipients = [uid for uid in recipients if uid and uid != ctx.user_id]

    kind = "reply" if parent else "comment"
    return notify_users(
        ctx.store,
        recipients,
        project_id=ticket["projectId"],
        type=NotificationType.COMMENT_REPLY if parent else NotificationType.COMMENT_ADDED,
        title=f"New {kind.capitalize()}",
        message=f"New {kind} on ticket: {ticket['title']}",
        action_url=ticket_url(ticket["projectId"], ticket["id"]),
    )


def _create_comment(ctx: FunctionContext, body: dict, data: dict) -> dict:
    ticket_id = body.get("ticketId")
    raise_for_errors(validate_comment({"ticketId": ticket_id, "content": data.get("content")}))

    ticket = get_or_404(ctx.store, TICKETS_COLLECTION, ticket_id, "Ticket")
    role = require_member(ctx.store, ticket["projectId"], ctx.user_id)
    require_permission(role, CAN_COMMENT, "You do not have permission to comment")

    parent = None
    if data.get("parentId"):
        parent = _parent_comment(ctx, ticket_id, data["parentId"])

    author = user_summary(ctx.users, ctx.user_id)
    comment = ctx.store.create(
        COMMENTS_COLLECTION,
        to_document(
            Comment(
                ticket_id=ticket_id,
                user_id=ctx.user_id,
                author_id=ctx.user_id,
                author_name=author["name"] or author["email"] or UNKNOWN_USER_NAME,
                author_email=author["email"] or None,
                content=sanitize_string(data["content"]),
                parent_id=parent["id"] if parent else None,
            )
        ),
    )

    record_activity(
        ctx.store,
        project_id=ticket["projectId"],
        ticket_id=ticket_id,
        user_id=ctx.user_id,
        action=ActivityAction.COMMENT_ADDED,
        details={"commentId": comment["id"]},
    )
    _notify_comment(ctx, ticket, parent)

    logger.info("Comment added to ticket %s by user %s", ticket_id, ctx.user_id)
    return {**comment, "user": author}


def _update_comment(ctx: FunctionContext, body: dict, data: dict) -> dict:
    comment_id = require_id(body.get("commentId"), "comment")
    message = content_error(data.get("content"))
    if message:
        raise ValidationError(message)

    comment = get_or_404(ctx.store, COMMENTS_COLLECTION, comment_id, "Comment")
    if comment.get("userId") != ctx.user_id:
        raise PermissionDeniedError("You can only edit your own comments")

    updated = ctx.store.update(
        COMMENTS_COLLECTION, comment_id, {"content": sanitize_string(data["content"])}
    )
    logger.info("Comment %s updated by user %s", comment_id, ctx.user_id)
    return updated


def _delete_thread(ctx: FunctionContext, comment_id: str) -> int:
    """Deletes a comment after all of its nested replies."""
    deleted = 0
    replies = list_all(ctx.store, COMMENTS_COLLECTION, Query(equal={"parentId": comment_id}))
    for reply in replies:
        deleted += _delete_thread(ctx, reply["id"])
    ctx.store.delete(COMMENTS_COLLECTION, comment_id)
    return deleted + 1


def _delete_comment(ctx: FunctionContext, body: dict) -> dict:
    comment_id = require_id(body.get("commentId"), "comment")
    comment = get_or_404(ctx.store, COMMENTS_COLLECTION, comment_id, "Comment")
    ticket = get_or_404(ctx.store, TICKETS_COLLECTION, comment["ticketId"], "Ticket")

    role = get_user_project_role(ctx.store, ticket["projectId"], ctx.user_id)
    if comment.get("userId") != ctx.user_id and not has_permission(
        role, CAN_DELETE_TICKETS
    ):
        raise PermissionDeniedError("You do not have permission to delete this comment")

    deleted = _delete_thread(ctx, comment_id)
    record_activity(
        ctx.store,
        project_id=ticket["projectId"],
        ticket_id=ticket["id"],
        user_id=ctx.user_id,
        action=ActivityAction.COMMENT_DELETED,
        details={"commentId": comment_id},
    )
    logger.info(
        "Comment %s (%d with replies) deleted by user %s",
        comment_id,
        deleted,
        ctx.user_id,
    )
    return {"deleted": True}


@tracker_function("manage-comments", failure_message="Failed to manage comments")
def manage_comments(ctx: FunctionContext, body: dict) -> dict:
    action = body.get("action")
    data = body.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body")

    if action == "list":
        return _list_comments(ctx, body)
    if action == "create":
        return _create_comment(ctx, body, data)
    if action == "update":
        return _update_comment(ctx, body, data)
    if action == "delete":
        return _delete_comment(ctx, body)
    raise ValidationError("Invalid action")
