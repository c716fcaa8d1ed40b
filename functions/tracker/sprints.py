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

"""Sprint planning: the manage-sprints function."""

import logging

from shared.api import PaginatedResult
from shared.constants import (
    PROJECT_MEMBERS_COLLECTION,
    PROJECTS_COLLECTION,
    SPRINTS_COLLECTION,
    TICKETS_COLLECTION,
)
from shared.errors import NotFoundError, ValidationError
from shared.json_utils import to_document
from shared.types import (
    ActivityAction,
    NotificationType,
    Sprint,
    SprintStatus,
    TicketStatus,
)
from backend.store import Query
from tracker.activity import record_activity
from tracker.lookups import get_or_404, list_all
from tracker.notifications import notify_users
from tracker.permissions import CAN_EDIT_PROJECT, require_member, require_permission
from tracker.registry import FunctionContext, tracker_function
from tracker.validation import raise_for_errors, require_id, validate_sprint

logger = logging.getLogger(__name__)

_SPRINT_FIELDS = ("name", "goal", "startDate", "endDate")


def _get_sprint(ctx: FunctionContext, project_id: str, body: dict) -> dict:
    sprint_id = require_id(body.get("sprintId"), "sprint")
    sprint = get_or_404(ctx.store, SPRINTS_COLLECTION, sprint_id, "Sprint")
    if sprint.get("projectId") != project_id:
        raise NotFoundError("Sprint not found")
    return sprint


def _active_sprint(ctx: FunctionContext, project_id: str):
    result = ctx.store.list(
        SPRINTS_COLLECTION,
        Query(equal={"projectId": project_id, "status": SprintStatus.ACTIVE}, limit=1),
    )
    return result.documents[0] if result.documents else None


def _sprint_tickets(ctx: FunctionContext, sprint: dict) -> list[dict]:
    return list_all(
        ctx.store,
        TICKETS_COLLECTION,
        Query(equal={"projectId": sprint["projectId"], "sprintId": sprint["id"]}),
    )


def _log(ctx: FunctionContext, sprint: dict, action: str, **details) -> None:
    record_activity(
        ctx.store,
        project_id=sprint["projectId"],
        user_id=ctx.user_id,
        action=action,
        details={"sprintId": sprint["id"], "name": sprint["name"], **details},
    )


def _create_sprint(ctx: FunctionContext, project_id: str, data: dict) -> dict:
    raise_for_errors(validate_sprint(data))
    sprint = ctx.store.create(
        SPRINTS_COLLECTION,
        to_document(
            Sprint(
                project_id=project_id,
                name=data["name"].strip(),
                goal=data.get("goal") or "",
                start_date=data["startDate"],
                end_date=data["endDate"],
            )
        ),
    )
    _log(ctx, sprint, ActivityAction.SPRINT_CREATED)
    logger.info("Sprint created: %s by user %s", sprint["id"], ctx.user_id)
    return sprint


def _update_sprint(ctx: FunctionContext, sprint: dict, data: dict) -> dict:
    raise_for_errors(validate_sprint(data, partial=True))
    changes = {name: data[name] for name in _SPRINT_FIELDS if name in data}
    if not changes:
        raise ValidationError("No valid fields to update")
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    if "goal" in changes:
        changes["goal"] = changes["goal"] or ""
    raise_for_errors(validate_sprint({**sprint, **changes}))

    updated = ctx.store.update(SPRINTS_COLLECTION, sprint["id"], changes)
    logger.info("Sprint %s updated by user %s", sprint["id"], ctx.user_id)
    return updated


def _start_sprint(ctx: FunctionContext, sprint: dict) -> dict:
    if sprint.get("status") != SprintStatus.PLANNING:
        raise ValidationError("Only a sprint in planning can be started")
    if _active_sprint(ctx, sprint["projectId"]) is not None:
        raise ValidationError("Another sprint is already active in this project")

    updated = ctx.store.update(
        SPRINTS_COLLECTION, sprint["id"], {"status": SprintStatus.ACTIVE}
    )
    _log(ctx, updated, ActivityAction.SPRINT_STARTED)

    members = list_all(
        ctx.store,
        PROJECT_MEMBERS_COLLECTION,
        Query(equal={"projectId": sprint["projectId"]}),
    )
    notify_users(
        ctx.store,
        [m["userId"] for m in members if m.get("userId") != ctx.user_id],
        project_id=sprint["projectId"],
        type=NotificationType.SPRINT_STARTED,
        title="Sprint started",
        message=f'Sprint "{updated["name"]}" has started',
        action_url=f"/projects/{sprint['projectId']}/sprints",
    )
    logger.info("Sprint %s started by user %s", sprint["id"], ctx.user_id)
    return updated


def _complete_sprint(ctx: FunctionContext, sprint: dict) -> dict:
    if sprint.get("status") != SprintStatus.ACTIVE:
        raise ValidationError("Only an active sprint can be completed")

    unfinished = [
        ticket
        for ticket in _sprint_tickets(ctx, sprint)
        if ticket.get("status") != TicketStatus.DONE
    ]
    for ticket in unfinished:
        ctx.store.update(TICKETS_COLLECTION, ticket["id"], {"sprintId": None})

    updated = ctx.store.update(
        SPRINTS_COLLECTION, sprint["id"], {"status": SprintStatus.COMPLETED}
    )
    _log(
        ctx,
        updated,
        ActivityAction.SPRINT_COMPLETED,
        unfinishedTickets=len(unfinished),
    )
    logger.info(
        "Sprint %s completed with %d unfinished tickets by user %s",
        sprint["id"],
        len(unfinished),
        ctx.user_id,
    )
    return updated


def _delete_sprint(ctx: FunctionContext, sprint: dict) -> dict:
    for ticket in _sprint_tickets(ctx, sprint):
        ctx.store.update(TICKETS_COLLECTION, ticket["id"], {"sprintId": None})
    ctx.store.delete(SPRINTS_COLLECTION, sprint["id"])
    _log(ctx, sprint, ActivityAction.SPRINT_DELETED)
    logger.info("Sprint %s deleted by user %s", sprint["id"], ctx.user_id)
    return {"deleted": True}


@tracker_function("manage-sprints", failure_message="Failed to manage sprints")
def manage_sprints(ctx: FunctionContext, body: dict):
    project_id = require_id(body.get("projectId"), "project")
    action = body.get("action")
    data = body.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body")

    role = require_member(ctx.store, project_id, ctx.user_id)

    if action == "list":
        sprints = list_all(
            ctx.store,
            SPRINTS_COLLECTION,
            Query(
                equal={"projectId": project_id},
                order_by="startDate",
                descending=True,
            ),
        )
        return PaginatedResult(documents=sprints, total=len(sprints)).to_dict()
    if action == "get":
        return _get_sprint(ctx, project_id, body)
    if action == "active":
        return _active_sprint(ctx, project_id)

    if action not in ("create", "update", "start", "complete", "delete"):
        raise ValidationError("Invalid action")
    require_permission(
        role, CAN_EDIT_PROJECT, "You do not have permission to manage sprints"
    )

    if action == "create":
        get_or_404(ctx.store, PROJECTS_COLLECTION, project_id, "Project")
        return _create_sprint(ctx, project_id, data)

    sprint = _get_sprint(ctx, project_id, body)
    if action == "update":
        return _update_sprint(ctx, sprint, data)
    if action == "start":
        return _start_sprint(ctx, sprint)
    if action == "complete":
        return _complete_sprint(ctx, sprint)
    return _delete_sprint(ctx, sprint)
