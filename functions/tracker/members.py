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

"""Project membership functions: invite-member and manage-member."""

import logging

from shared.api import PaginatedResult
from shared.constants import PROJECT_MEMBERS_COLLECTION, PROJECTS_COLLECTION
from shared.errors import NotFoundError, PermissionDeniedError, ValidationError
from shared.json_utils import to_document
from shared.types import ActivityAction, ProjectMember, ProjectRole
from backend.store import Query, now_timestamp
from tracker.activity import record_activity
from tracker.lookups import get_or_404, list_all, user_summaries
from tracker.notifications import notify_member_added
from tracker.permissions import (
    CAN_MANAGE_MEMBERS,
    get_membership,
    require_member,
    require_permission,
    role_rank,
)
from tracker.registry import FunctionContext, tracker_function
from tracker.validation import is_valid_email, is_valid_role, require_id

logger = logging.getLogger(__name__)


def _is_owner(ctx: FunctionContext, project_id: str, user_id: str) -> bool:
    project = get_or_404(ctx.store, PROJECTS_COLLECTION, project_id, "Project")
    return project.get("ownerId") == user_id


@tracker_function("invite-member", failure_message="Failed to invite member")
def invite_member(ctx: FunctionContext, body: dict) -> dict:
    project_id = require_id(body.get("projectId"), "project")
    email = body.get("email")
    role = body.get("role")
    if not email or not is_valid_email(email):
        raise ValidationError("Valid email is required")
    if not role or not is_valid_role(role):
        raise ValidationError("Valid role is required")

    inviter_role = require_member(ctx.store, project_id, ctx.user_id)
    require_permission(
        inviter_role,
        CAN_MANAGE_MEMBERS,
        "You do not have permission to invite members",
    )
    if role_rank(role) > role_rank(inviter_role) and inviter_role != ProjectRole.ADMIN:
        raise PermissionDeniedError(
            "You cannot invite someone with a higher role than yours"
        )

    invitee = ctx.users.find_by_email(email)
    if invitee is None:
        raise NotFoundError("User not found. They must register first.")
    if invitee.id == ctx.user_id:
        raise ValidationError("You cannot invite yourself to the project")
    if get_membership(ctx.store, project_id, invitee.id) is not None:
        raise ValidationError("User is already a member of this project")

    project = get_or_404(ctx.store, PROJECTS_COLLECTION, project_id, "Project")
    member = ctx.store.create(
        PROJECT_MEMBERS_COLLECTION,
        to_document(
            ProjectMember(
                project_id=project_id,
                user_id=invitee.id,
                role=role,
                user_email=email,
                user_name=invitee.name or email,
                joined_at=now_timestamp(),
            )
        ),
    )

    record_activity(
        ctx.store,
        project_id=project_id,
        user_id=ctx.user_id,
        action=ActivityAction.MEMBER_ADDED,
        details={"inviteeId": invitee.id, "role": role},
    )
    notify_member_added(ctx.store, invitee.id, project)

    logger.info(
        "User %s invited to project %s with role %s by user %s",
        invitee.id,
        project_id,
        role,
        ctx.user_id,
    )
    return member


def _target_member(ctx: FunctionContext, project_id: str, member_id: str) -> dict:
    member = get_or_404(ctx.store, PROJECT_MEMBERS_COLLECTION, member_id, "Member")
    if member.get("projectId") != project_id:
        raise NotFoundError("Member not found")
    return member


def _list_members(ctx: FunctionContext, project_id: str) -> dict:
    members = list_all(
        ctx.store, PROJECT_MEMBERS_COLLECTION, Query(equal={"projectId": project_id})
    )
    people = user_summaries(ctx.users, [m.get("userId") for m in members])
    documents = [{**m, "user": people.get(m.get("userId"))} for m in members]
    return PaginatedResult(documents=documents, total=len(documents)).to_dict()


def _update_role(ctx: FunctionContext, project_id: str, role: str, body: dict):
    member_id = require_id(body.get("memberId"), "member")
    require_permission(
        role, CAN_MANAGE_MEMBERS, "You do not have permission to manage members"
    )
    data = body.get("data") or {}
    new_role = data.get("role") if isinstance(data, dict) else None
    if not new_role or not is_valid_role(new_role):
        raise ValidationError("Valid role is required")
    member = _target_member(ctx, project_id, member_id)

    if member["userId"] == ctx.user_id:
        raise ValidationError("You cannot change your own role")
    if _is_owner(ctx, project_id, member["userId"]):
        raise PermissionDeniedError("Cannot change project owner's role")
    if role_rank(member.get("role")) >= role_rank(role):
        raise PermissionDeniedError(
            "You cannot change the role of a member with equal or higher rank"
        )
    if role_rank(new_role) > role_rank(role) and role != ProjectRole.ADMIN:
        raise PermissionDeniedError(
            "You cannot promote someone to a higher role than yours"
        )

    updated = ctx.store.update(
        PROJECT_MEMBERS_COLLECTION, member["id"], {"role": new_role}
    )
    record_activity(
        ctx.store,
        project_id=project_id,
        user_id=ctx.user_id,
        action=ActivityAction.MEMBER_ROLE_CHANGED,
        details={"memberId": member["id"], "newRole": new_role},
    )
    logger.info(
        "Member %s role changed to %s by user %s", member["id"], new_role, ctx.user_id
    )
    return updated


def _remove_member(ctx: FunctionContext, project_id: str, role: str, body: dict):
    member_id = require_id(body.get("memberId"), "member")
    require_permission(
        role, CAN_MANAGE_MEMBERS, "You do not have permission to manage members"
    )
    member = _target_member(ctx, project_id, member_id)
    if _is_owner(ctx, project_id, member["userId"]):
        raise PermissionDeniedError("Cannot remove project owner")
    if role_rank(role) <= role_rank(member.get("role")):
        raise PermissionDeniedError(
            "You cannot remove a member with equal or higher rank"
        )

    ctx.store.delete(PROJECT_MEMBERS_COLLECTION, member["id"])
    record_activity(
        ctx.store,
        project_id=project_id,
        user_id=ctx.user_id,
        action=ActivityAction.MEMBER_REMOVED,
        details={"removedUserId": member["userId"]},
    )
    logger.info(
        "Member %s removed from project %s by user %s",
        member["id"],
        project_id,
        ctx.user_id,
    )
    return {"deleted": True}


def _leave_project(ctx: FunctionContext, project_id: str) -> dict:
    membership = get_membership(ctx.store, project_id, ctx.user_id)
    if membership is None:
        raise PermissionDeniedError("You are not a member of this project")
    if _is_owner(ctx, project_id, ctx.user_id):
        raise PermissionDeniedError(
            "Project owner cannot leave. Transfer ownership first or delete the project."
        )

    ctx.store.delete(PROJECT_MEMBERS_COLLECTION, membership["id"])
    record_activity(
        ctx.store,
        project_id=project_id,
        user_id=ctx.user_id,
        action=ActivityAction.MEMBER_REMOVED,
        details={"removedUserId": ctx.user_id},
    )
    logger.info("User %s left project %s", ctx.user_id, project_id)
    return {"deleted": True}


@tracker_function("manage-member", failure_message="Failed to manage member")
def manage_member(ctx: FunctionContext, body: dict) -> dict:
    project_id = require_id(body.get("projectId"), "project")
    action = body.get("action")
    role = require_member(ctx.store, project_id, ctx.user_id)

    if action == "list":
        return _list_members(ctx, project_id)
    if action == "updateRole":
        return _update_role(ctx, project_id, role, body)
    if action == "remove":
        return _remove_member(ctx, project_id, role, body)
    if action == "leave":
        return _leave_project(ctx, project_id)
    raise ValidationError("Invalid action")
