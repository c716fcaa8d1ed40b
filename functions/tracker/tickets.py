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

"""
Ticket functions: create-ticket, get-tickets, manage-ticket, move-ticket and
search-tickets.

Tickets are numbered per project and shown to users by their key, the
project key and the ticket number joined with a dash (``WEB-42``).
"""

import logging
from typing import Optional

from backend.store import Query
from shared.api import PaginatedResult
from shared.constants import (
    COMMENTS_COLLECTION,
    DEFAULT_SEARCH_LIMIT,
    MAX_LABEL_LENGTH,
    MAX_SEARCH_LIMIT,
    MAX_SEARCH_QUERY_LENGTH,
    PROJECTS_COLLECTION,
    SPRINTS_COLLECTION,
    TICKET_DESCRIPTION_MAX_LENGTH,
    TICKET_TITLE_MAX_LENGTH,
    TICKET_TITLE_MIN_LENGTH,
    TICKETS_COLLECTION,
)
from shared.errors import ValidationError
from shared.json_utils import to_document
from shared.types import (
    ActivityAction,
    Ticket,
    TicketPriority,
    TicketStatus,
    TicketType,
)
from tracker.activity import record_activity
from tracker.lookups import delete_matching, get_or_404, list_all, user_summaries
from tracker.notifications import notify_ticket_assigned
from tracker.permissions import (
    CAN_ASSIGN_TICKETS,
    CAN_CREATE_TICKETS,
    CAN_DELETE_TICKETS,
    CAN_EDIT_TICKETS,
    CAN_MOVE_TICKETS,
    get_membership,
    require_member,
    require_permission,
)
from tracker.registry import FunctionContext, tracker_function
from tracker.validation import (
    attachment_errors,
    clamp_limit,
    is_valid_date,
    is_valid_id,
    is_valid_order,
    is_valid_status,
    label_errors,
    raise_for_errors,
    require_id,
    valid_choices,
    validate_ticket,
)

logger = logging.getLogger(__name__)


def ticket_key(project: dict, ticket: dict) -> str:
    return f"{project['key']}-{ticket['ticketNumber']}"


def _check_sprint(ctx: FunctionContext, project_id: str, sprint_id: str) -> None:
    sprint = get_or_404(ctx.store, SPRINTS_COLLECTION, sprint_id, "Sprint")
    if sprint.get("projectId") != project_id:
        raise ValidationError("Sprint does not belong to this project")


def _with_people(ctx: FunctionContext, tickets: list[dict], project: dict) -> list[dict]:
    """Adds ticketKey and reporter/assignee summaries to each ticket."""
    people = user_summaries(
        ctx.users,
        [uid for t in tickets for uid in (t.get("reporterId"), t.get("assigneeId"))],
    )
    return [
        {
            **ticket,
            "ticketKey": ticket_key(project, ticket),
            "reporter": people.get(ticket.get("reporterId")),
            "assignee": people.get(ticket.get("assigneeId")),
        }
        for ticket in tickets
    ]


def _ticket_filters(filters: dict) -> Query:
    """Equality filters shared by get-tickets and search-tickets."""
    query = Query()
    for name, allowed in (
        ("status", TicketStatus),
        ("priority", TicketPriority),
        ("type", TicketType),
    ):
        values = valid_choices(filters.get(name), allowed)
        if values:
            query.equal[name] = values
    for name in ("assigneeId", "reporterId", "sprintId"):
        if is_valid_id(filters.get(name)):
            query.equal[name] = filters[name]
    return query


def _last_ticket(
    ctx: FunctionContext, equal: dict, order_by: str
) -> Optional[dict]:
    result = ctx.store.list(
        TICKETS_COLLECTION,
        Query(equal=equal, order_by=order_by, descending=True, limit=1),
    )
    return result.documents[0] if result.documents else None


@tracker_function("create-ticket", failure_message="Failed to create ticket")
def create_ticket(ctx: FunctionContext, body: dict) -> dict:
    raise_for_errors(validate_ticket(body))
    project_id = body["projectId"]

    role = require_member(ctx.store, project_id, ctx.user_id)
    require_permission(
        role, CAN_CREATE_TICKETS, "You do not have permission to create tickets"
    )
    project = get_or_404(ctx.store, PROJECTS_COLLECTION, project_id, "Project")
    if body.get("sprintId"):
        _check_sprint(ctx, project_id, body["sprintId"])

    last = _last_ticket(ctx, {"projectId": project_id}, "ticketNumber")
    number = last["ticketNumber"] + 1 if last else 1
    last_todo = _last_ticket(
        ctx, {"projectId": project_id, "status": TicketStatus.TODO}, "order"
    )
    order = last_todo["order"] + 1 if last_todo else 0

    ticket = ctx.store.create(
        TICKETS_COLLECTION,
        to_document(
            Ticket(
                project_id=project_id,
                ticket_number=number,
                title=body["title"].strip(),
                description=body.get("description") or "",
                type=body["type"],
                priority=body["priority"],
                reporter_id=ctx.user_id,
                assignee_id=body.get("assigneeId") or None,
                labels=body.get("labels") or [],
                due_date=body.get("dueDate") or None,
                order=order,
                sprint_id=body.get("sprintId") or None,
                attachments=body.get("attachments") or [],
            )
        ),
    )
    key = ticket_key(project, ticket)

    record_activity(
        ctx.store,
        project_id=project_id,
        ticket_id=ticket["id"],
        user_id=ctx.user_id,
        action=ActivityAction.TICKET_CREATED,
        details={"title": ticket["title"], "ticketKey": key},
    )
    if ticket.get("assigneeId") and ticket["assigneeId"] != ctx.user_id:
        notify_ticket_assigned(ctx.store, ticket["assigneeId"], ticket, key)

    logger.info("Ticket created: %s by user %s", key, ctx.user_id)
    return {**ticket, "ticketKey": key}


@tracker_function("get-tickets", failure_message="Failed to fetch tickets")
def get_tickets(ctx: FunctionContext, body: dict) -> dict:
    project_id = require_id(body.get("projectId"), "project")
    filters = body.get("filters") or {}
    if not isinstance(filters, dict):
        filters = {}

    require_member(ctx.store, project_id, ctx.user_id)
    project = get_or_404(ctx.store, PROJECTS_COLLECTION, project_id, "Project")

    query = _ticket_filters(filters)
    query.equal["projectId"] = project_id
    query.order_by = "order"
    tickets = list_all(ctx.store, TICKETS_COLLECTION, query)

    documents = _with_people(ctx, tickets, project)
    logger.info("Fetched %d tickets for project %s", len(documents), project_id)
    return PaginatedResult(documents=documents, total=len(documents)).to_dict()


@tracker_function("search-tickets", failure_message="Failed to search tickets")
def search_tickets(ctx: FunctionContext, body: dict) -> dict:
    project_id = require_id(body.get("projectId"), "project")
    text = body.get("query")
    text = text.strip()[:MAX_SEARCH_QUERY_LENGTH] if isinstance(text, str) else ""
    filters = body.get("filters") or {}
    if not isinstance(filters, dict):
        filters = {}
    limit = clamp_limit(body.get("limit"), DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT)

    require_member(ctx.store, project_id, ctx.user_id)

    query = _ticket_filters(filters)
    query.equal["projectId"] = project_id
    query.order_by = "order"
    query.limit = limit
    if text:
        query.search = ("title", text)
    labels = filters.get("labels")
    if isinstance(labels, list):
        labels = [
            label
            for label in labels
            if isinstance(label, str) and len(label) <= MAX_LABEL_LENGTH
        ]
        if labels:
            query.contains_any["labels"] = labels

    result = ctx.store.list(TICKETS_COLLECTION, query)
    project = get_or_404(ctx.store, PROJECTS_COLLECTION, project_id, "Project")
    documents = _with_people(ctx, result.documents, project)

    logger.info(
        'Search found %d tickets for query "%s" in project %s',
        len(documents),
        text,
        project_id,
    )
    return PaginatedResult(documents=documents, total=result.total).to_dict()


def _ticket_changes(ctx: FunctionContext, ticket: dict, data: dict) -> dict:
    changes = {}
    title = data.get("title")
    if title and isinstance(title, str):
        if not (
            TICKET_TITLE_MIN_LENGTH <= len(title.strip()) <= TICKET_TITLE_MAX_LENGTH
        ):
            raise ValidationError("Title must be between 5 and 200 characters")
        changes["title"] = title.strip()

    if "description" in data:
        description = data["description"]
        if description and not isinstance(description, str):
            raise ValidationError("Description must be a string")
        if description and len(description) > TICKET_DESCRIPTION_MAX_LENGTH:
            raise ValidationError("Description must be less than 10000 characters")
        changes["description"] = description or ""

    if data.get("type"):
        if data["type"] not in list(TicketType):
            raise ValidationError("Invalid ticket type")
        changes["type"] = data["type"]

    if data.get("priority"):
        if data["priority"] not in list(TicketPriority):
            raise ValidationError("Invalid priority")
        changes["priority"] = data["priority"]

    if data.get("labels") is not None:
        message = label_errors(data["labels"])
        if message:
            raise ValidationError(message)
        changes["labels"] = data["labels"]

    if "dueDate" in data:
        if data["dueDate"] and not is_valid_date(data["dueDate"]):
            raise ValidationError("Invalid due date format")
        changes["dueDate"] = data["dueDate"] or None

    if "sprintId" in data:
        sprint_id = data["sprintId"]
        if sprint_id:
            if not is_valid_id(sprint_id):
                raise ValidationError("Invalid sprint ID format")
            _check_sprint(ctx, ticket["projectId"], sprint_id)
        changes["sprintId"] = sprint_id or None

    if data.get("attachments") is not None:
        message = attachment_errors(data["attachments"])
        if message:
            raise ValidationError(message)
        changes["attachments"] = data["attachments"]

    return changes


def _delete_ticket(ctx: FunctionContext, ticket: dict, role: str) -> dict:
    require_permission(
        role, CAN_DELETE_TICKETS, "You do not have permission to delete tickets"
    )
    delete_matching(ctx.store, COMMENTS_COLLECTION, {"ticketId": ticket["id"]})
    for file_id in ticket.get("attachments") or []:
        try:
            ctx.storage.delete_file(ctx.attachment_path(file_id))
        except Exception as e:
            logger.warning("Could not delete attachment %s: %s", file_id, e)
    ctx.store.delete(TICKETS_COLLECTION, ticket["id"])

    record_activity(
        ctx.store,
        project_id=ticket["projectId"],
        user_id=ctx.user_id,
        action=ActivityAction.TICKET_DELETED,
        details={"ticketNumber": ticket["ticketNumber"]},
    )
    logger.info("Ticket %s deleted by user %s", ticket["id"], ctx.user_id)
    return {"deleted": True}


def _assign_ticket(ctx: FunctionContext, ticket: dict, role: str, data: dict):
    require_permission(
        role, CAN_ASSIGN_TICKETS, "You do not have permission to assign tickets"
    )
    assignee_id = data.get("assigneeId") or None
    if assignee_id is not None:
        if not is_valid_id(assignee_id):
            raise ValidationError("Invalid assignee ID format")
        if get_membership(ctx.store, ticket["projectId"], assignee_id) is None:
            raise ValidationError("Assignee must be a member of this project")

    updated = ctx.store.update(
        TICKETS_COLLECTION, ticket["id"], {"assigneeId": assignee_id}
    )
    record_activity(
        ctx.store,
        project_id=ticket["projectId"],
        ticket_id=ticket["id"],
        user_id=ctx.user_id,
        action=ActivityAction.TICKET_ASSIGNED,
        details={"assigneeId": assignee_id},
    )
    if assignee_id and assignee_id != ctx.user_id:
        project = get_or_404(
            ctx.store, PROJECTS_COLLECTION, ticket["projectId"], "Project"
        )
        notify_ticket_assigned(
            ctx.store, assignee_id, updated, ticket_key(project, updated)
        )

    logger.info(
        "Ticket %s assigned to %s by user %s",
        ticket["id"],
        assignee_id or "none",
        ctx.user_id,
    )
    return updated


@tracker_function("manage-ticket", failure_message="Failed to manage ticket")
def manage_ticket(ctx: FunctionContext, body: dict) -> dict:
    ticket_id = body.get("ticketId")
    if not ticket_id or not isinstance(ticket_id, str):
        raise ValidationError("Valid ticket ID is required")
    if not is_valid_id(ticket_id):
        raise ValidationError("Invalid ticket ID format")
    action = body.get("action")
    data = body.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body")

    ticket = get_or_404(ctx.store, TICKETS_COLLECTION, ticket_id, "Ticket")
    role = require_member(ctx.store, ticket["projectId"], ctx.user_id)

    if action == "get":
        project = get_or_404(
            ctx.store, PROJECTS_COLLECTION, ticket["projectId"], "Project"
        )
        attachment_urls = [
            {"id": file_id, "url": ctx.storage.presign_get(ctx.attachment_path(file_id))}
            for file_id in ticket.get("attachments") or []
        ]
        return {
            **_with_people(ctx, [ticket], project)[0],
            "attachmentUrls": attachment_urls,
        }

    if action == "update":
        require_permission(
            role, CAN_EDIT_TICKETS, "You do not have permission to edit tickets"
        )
        changes = _ticket_changes(ctx, ticket, data)
        if not changes:
            raise ValidationError("No valid update data provided")
        updated = ctx.store.update(TICKETS_COLLECTION, ticket_id, changes)
        record_activity(
            ctx.store,
            project_id=ticket["projectId"],
            ticket_id=ticket_id,
            user_id=ctx.user_id,
            action=ActivityAction.TICKET_UPDATED,
            details=changes,
        )
        logger.info("Ticket %s updated by user %s", ticket_id, ctx.user_id)
        return updated

    if action == "assign":
        return _assign_ticket(ctx, ticket, role, data)

    if action == "delete":
        return _delete_ticket(ctx, ticket, role)

    raise ValidationError("Invalid action")


@tracker_function("move-ticket", failure_message="Failed to move ticket")
def move_ticket(ctx: FunctionContext, body: dict) -> dict:
    ticket_id = body.get("ticketId")
    if not ticket_id or not isinstance(ticket_id, str):
        raise ValidationError("Valid ticket ID is required")
    if not is_valid_id(ticket_id):
        raise ValidationError("Invalid ticket ID format")
    new_status = body.get("newStatus")
    if not new_status:
        raise ValidationError("New status is required")
    if not is_valid_status(new_status):
        raise ValidationError("Invalid ticket status")
    has_order = "newOrder" in body
    new_order = body.get("newOrder")
    if has_order and not is_valid_order(new_order):
        raise ValidationError("Invalid order value")

    ticket = get_or_404(ctx.store, TICKETS_COLLECTION, ticket_id, "Ticket")
    role = require_member(ctx.store, ticket["projectId"], ctx.user_id)
    require_permission(
        role, CAN_MOVE_TICKETS, "You do not have permission to move tickets"
    )

    old_status = ticket.get("status")
    changes = {"status": new_status}
    if has_order:
        changes["order"] = new_order
    updated = ctx.store.update(TICKETS_COLLECTION, ticket_id, changes)

    if old_status != new_status:
        record_activity(
            ctx.store,
            project_id=ticket["projectId"],
            ticket_id=ticket_id,
            user_id=ctx.user_id,
            action=ActivityAction.TICKET_MOVED,
            details={"from": old_status, "to": new_status},
        )
    logger.info(
        "Ticket %s moved from %s to %s by user %s",
        ticket_id,
        old_status,
        new_status,
        ctx.user_id,
    )
    return updated
