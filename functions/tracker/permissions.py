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

"""Role-based permission table for project members."""

from typing import Optional

from backend.store import DocumentStore, Query
from shared.constants import PROJECT_MEMBERS_COLLECTION
from shared.errors import PermissionDeniedError
from shared.types import ROLE_HIERARCHY, ProjectRole

CAN_CREATE_TICKETS = "canCreateTickets"
CAN_EDIT_TICKETS = "canEditTickets"
CAN_DELETE_TICKETS = "canDeleteTickets"
CAN_ASSIGN_TICKETS = "canAssignTickets"
CAN_MOVE_TICKETS = "canMoveTickets"
CAN_MANAGE_MEMBERS = "canManageMembers"
CAN_EDIT_PROJECT = "canEditProject"
CAN_DELETE_PROJECT = "canDeleteProject"
CAN_COMMENT = "canComment"

PERMISSIONS = {
    ProjectRole.ADMIN: {
        CAN_CREATE_TICKETS: True,
        CAN_EDIT_TICKETS: True,
        CAN_DELETE_TICKETS: True,
        CAN_ASSIGN_TICKETS: True,
        CAN_MOVE_TICKETS: True,
        CAN_MANAGE_MEMBERS: True,
        CAN_EDIT_PROJECT: True,
        CAN_DELETE_PROJECT: True,
        CAN_COMMENT: True,
    },
    ProjectRole.MANAGER: {
        CAN_CREATE_TICKETS: True,
        CAN_EDIT_TICKETS: True,
        CAN_DELETE_TICKETS: True,
        CAN_ASSIGN_TICKETS: True,
        CAN_MOVE_TICKETS: True,
        CAN_MANAGE_MEMBERS: True,
        CAN_EDIT_PROJECT: True,
        CAN_DELETE_PROJECT: False,
        CAN_COMMENT: True,
    },
    ProjectRole.DEVELOPER: {
        CAN_CREATE_TICKETS: True,
        CAN_EDIT_TICKETS: True,
        CAN_DELETE_TICKETS: False,
        CAN_ASSIGN_TICKETS: False,
        CAN_MOVE_TICKETS: True,
        CAN_MANAGE_MEMBERS: False,
        CAN_EDIT_PROJECT: False,
        CAN_DELETE_PROJECT: False,
        CAN_COMMENT: True,
    },
    ProjectRole.VIEWER: {
        CAN_CREATE_TICKETS: False,
        CAN_EDIT_TICKETS: False,
        CAN_DELETE_TICKETS: False,
        CAN_ASSIGN_TICKETS: False,
        CAN_MOVE_TICKETS: False,
        CAN_MANAGE_MEMBERS: False,
        CAN_EDIT_PROJECT: False,
        CAN_DELETE_PROJECT: False,
        CAN_COMMENT: True,
    },
}


def get_permissions(role: Optional[str]) -> dict:
    """Permission row for a role; unknown roles get viewer permissions."""
    return PERMISSIONS.get(role, PERMISSIONS[ProjectRole.VIEWER])


def has_permission(role: Optional[str], permission: str) -> bool:
    if not role:
        return False
    return get_permissions(role).get(permission) is True


def role_rank(role: Optional[str]) -> int:
    """Position in the role hierarchy, -1 for unknown roles."""
    try:
        return ROLE_HIERARCHY.index(role)
    except ValueError:
        return -1


def get_membership(
    store: DocumentStore, project_id: str, user_id: str
) -> Optional[dict]:
    result = store.list(
        PROJECT_MEMBERS_COLLECTION,
        Query(equal={"projectId": project_id, "userId": user_id}, limit=1),
    )
    return result.documents[0] if result.documents else None


def get_user_project_role(
    store: DocumentStore, project_id: str, user_id: str
) -> Optional[str]:
    membership = get_membership(store, project_id, user_id)
    return membership["role"] if membership else None


def require_member(store: DocumentStore, project_id: str, user_id: str) -> str:
    """Returns the caller's role, or raises if they are not a member."""
    role = get_user_project_role(store, project_id, user_id)
    if not role:
        raise PermissionDeniedError("You are not a member of this project")
    return role


def require_permission(role: Optional[str], permission: str, message: str) -> None:
    if not has_permission(role, permission):
        raise PermissionDeniedError(message)
