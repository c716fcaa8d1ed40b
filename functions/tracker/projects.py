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

"""Project functions: create-project, get-projects and manage-project."""

import logging

from shared.api import PaginatedResult
from shared.constants import (
    ACTIVITY_LOGS_COLLECTION,
    COMMENTS_COLLECTION,
    NOTIFICATIONS_COLLECTION,
    PROJECT_DESCRIPTION_MAX_LENGTH,
    PROJECT_MEMBERS_COLLECTION,
    PROJECT_NAME_MAX_LENGTH,
    PROJECT_NAME_MIN_LENGTH,
    PROJECTS_COLLECTION,
    SPRINTS_COLLECTION,
    TICKETS_COLLECTION,
)
from shared.errors import ValidationError
from shared.json_utils import to_document
from shared.types import (
    ActivityAction,
    Project,
    ProjectMember,
    ProjectRole,
    ProjectStatus,
)
from backend.store import Query
from tracker.activity import record_activity
from tracker.lookups import delete_matching, get_or_404, list_all
from tracker.permissions import (
    CAN_DELETE_PROJECT,
    CAN_EDIT_PROJECT,
    require_member,
    require_permission,
)
from tracker.registry import FunctionContext, tracker_function
from tracker.validation import raise_for_errors, require_id, validate_project

logger = logging.getLogger(__name__)


@tracker_function("create-project", failure_message="Failed to create project")
def create_project(ctx: FunctionContext, body: dict) -> dict:
    raise_for_errors(validate_project(body))

    key = body["key"].strip()
    existing = ctx.store.list(PROJECTS_COLLECTION, Query(equal={"key": key}, limit=1))
    if existing.total > 0:
        raise ValidationError(
            "A project with this key already exists. Please choose a different key."
        )

    project = ctx.store.create(
        PROJECTS_COLLECTION,
        to_document(
            Project(
                name=body["name"].strip(),
                key=key,
                owner_id=ctx.user_id,
                description=body.get("description") or "",
            )
        ),
    )

    owner = ctx.users.get_user(ctx.user_id)
    ctx.store.create(
        PROJECT_MEMBERS_COLLECTION,
        to_document(
            ProjectMember(
                project_id=project["id"],
                user_id=ctx.user_id,
                role=ProjectRole.ADMIN,
                user_email=owner.email if owner else None,
                user_name=(owner.name or owner.email) if owner else None,
                joined_at=project["createdAt"],
            )
        ),
    )

    record_activity(
        ctx.store,
        project_id=project["id"],
        user_id=ctx.user_id,
        action=ActivityAction.PROJECT_CREATED,
        details={"name": project["name"]},
    )

    logger.info("Project created: %s by user %s", project["id"], ctx.user_id)
    return project


@tracker_function("get-projects", failure_message="Failed to fetch projects")
def get_projects(ctx: FunctionContext, body: dict) -> dict:
    memberships = list_all(
        ctx.store, PROJECT_MEMBERS_COLLECTION, Query(equal={"userId": ctx.user_id})
    )
    if not memberships:
        return PaginatedResult(documents=[], total=0).to_dict()

    roles = {member["projectId"]: member["role"] for member in memberships}
    equal = {"id": list(roles)}
    if not body.get("includeArchived"):
        equal["status"] = ProjectStatus.ACTIVE

    projects = list_all(
        ctx.store,
        PROJECTS_COLLECTION,
        Query(equal=equal, order_by="createdAt", descending=True),
    )
    documents = [
        {**project, "userRole": roles.get(project["id"])} for project in projects
    ]

    logger.info("Fetched %d projects for user %s", len(documents), ctx.user_id)
    return PaginatedResult(documents=documents, total=len(documents)).to_dict()


def _update_project(ctx: FunctionContext, project_id: str, role: str, data: dict):
    require_permission(
        role, CAN_EDIT_PROJECT, "You do not have permission to edit this project"
    )
    if "key" in data:
        raise ValidationError("Project key cannot be changed after creation")

    changes = {}
    if "name" in data:
        name = data["name"]
        if (
            not isinstance(name, str)
            or len(name.strip()) < PROJECT_NAME_MIN_LENGTH
            or len(name) > PROJECT_NAME_MAX_LENGTH
        ):
            raise ValidationError("Project name must be between 3 and 100 characters")
        changes["name"] = name.strip()
    if "description" in data:
        description = data["description"]
        if description is not None and not isinstance(description, str):
            raise ValidationError("Invalid description format")
        if description and len(description) > PROJECT_DESCRIPTION_MAX_LENGTH:
            raise ValidationError("Description must be less than 2000 characters")
        changes["description"] = description or ""

    if not changes:
        raise ValidationError("No valid fields to update")

    updated = ctx.store.update(PROJECTS_COLLECTION, project_id, changes)
    record_activity(
        ctx.store,
        project_id=project_id,
        user_id=ctx.user_id,
        action=ActivityAction.PROJECT_UPDATED,
        details=changes,
    )
    logger.info("Project updated: %s by user %s", project_id, ctx.user_id)
    return updated


def _delete_attachments(ctx: FunctionContext, tickets: list[dict]) -> None:
    for ticket in tickets:
        for file_id in ticket.get("attachments") or []:
            try:
                ctx.storage.delete_file(ctx.attachment_path(file_id))
            except Exception as e:
                logger.warning("Could not delete attachment %s: %s", file_id, e)


def _delete_project(ctx: FunctionContext, project_id: str, role: str) -> dict:
    require_permission(
        role, CAN_DELETE_PROJECT, "You do not have permission to delete this project"
    )
    get_or_404(ctx.store, PROJECTS_COLLECTION, project_id, "Project")

    tickets = list_all(ctx.store, TICKETS_COLLECTION, Query(equal={"projectId": project_id}))
    _delete_attachments(ctx, tickets)
    for ticket in tickets:
        delete_matching(ctx.store, COMMENTS_COLLECTION, {"ticketId": ticket["id"]})
        ctx.store.delete(TICKETS_COLLECTION, ticket["id"])

    for collection in (
        SPRINTS_COLLECTION,
        ACTIVITY_LOGS_COLLECTION,
        NOTIFICATIONS_COLLECTION,
        PROJECT_MEMBERS_COLLECTION,
    ):
        delete_matching(ctx.store, collection, {"projectId": project_id})

    ctx.store.delete(PROJECTS_COLLECTION, project_id)
    logger.info(
        "Project deleted: %s (%d tickets) by user %s",
        project_id,
        len(tickets),
        ctx.user_id,
    )
    return {"deleted": True}


def _set_status(
    ctx: FunctionContext, project_id: str, role: str, action: str
) -> dict:
    require_permission(
        role, CAN_EDIT_PROJECT, f"You do not have permission to {action} this project"
    )
    project = get_or_404(ctx.store, PROJECTS_COLLECTION, project_id, "Project")
    if action == "restore":
        if project.get("status") != ProjectStatus.ARCHIVED:
            raise ValidationError("Project is not archived")
        status = ProjectStatus.ACTIVE
    else:
        status = ProjectStatus.ARCHIVED

    updated = ctx.store.update(PROJECTS_COLLECTION, project_id, {"status": status})
    logger.info("Project %s: %s by user %s", action, project_id, ctx.user_id)
    return updated


@tracker_function("manage-project", failure_message="Failed to manage project")
def manage_project(ctx: FunctionContext, body: dict) -> dict:
    project_id = require_id(body.get("projectId"), "project")
    action = body.get("action")
    data = body.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body")

    role = require_member(ctx.store, project_id, ctx.user_id)

    if action == "get":
        project = get_or_404(ctx.store, PROJECTS_COLLECTION, project_id, "Project")
        return {**project, "userRole": role}
    if action == "update":
        return _update_project(ctx, project_id, role, data)
    if action == "delete":
        return _delete_project(ctx, project_id, role)
    if action in ("archive", "restore"):
        return _set_status(ctx, project_id, role, action)
    raise ValidationError("Invalid action")
