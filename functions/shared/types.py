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

from enum import StrEnum
from dataclasses import dataclass, field
from typing import List, Optional


class ProjectRole(StrEnum):
    VIEWER = "viewer"
    DEVELOPER = "developer"
    MANAGER = "manager"
    ADMIN = "admin"


# Lowest to highest rank.
ROLE_HIERARCHY = [
    ProjectRole.VIEWER,
    ProjectRole.DEVELOPER,
    ProjectRole.MANAGER,
    ProjectRole.ADMIN,
]


class ProjectStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class TicketStatus(StrEnum):
    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    DONE = "done"


class TicketType(StrEnum):
    BUG = "bug"
    FEATURE = "feature"
    TASK = "task"
    IMPROVEMENT = "improvement"


class TicketPriority(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SprintStatus(StrEnum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"


class ActivityAction(StrEnum):
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    TICKET_CREATED = "ticket_created"
    TICKET_UPDATED = "ticket_updated"
    TICKET_DELETED = "ticket_deleted"
    TICKET_MOVED = "ticket_moved"
    TICKET_ASSIGNED = "ticket_assigned"
    COMMENT_ADDED = "comment_added"
    COMMENT_DELETED = "comment_deleted"
    MEMBER_ADDED = "member_added"
    MEMBER_REMOVED = "member_removed"
    MEMBER_ROLE_CHANGED = "member_role_changed"
    SPRINT_CREATED = "sprint_created"
    SPRINT_STARTED = "sprint_started"
    SPRINT_COMPLETED = "sprint_completed"
    SPRINT_DELETED = "sprint_deleted"


class NotificationType(StrEnum):
    TICKET_ASSIGNED = "ticket_assigned"
    COMMENT_ADDED = "comment_added"
    COMMENT_REPLY = "comment_reply"
    MEMBER_ADDED = "member_added"
    SPRINT_STARTED = "sprint_started"


@dataclass
class Project:
    name: str
    key: str
    owner_id: str
    description: str = ""
    status: str = ProjectStatus.ACTIVE
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class ProjectMember:
    project_id: str
    user_id: str
    role: str
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    joined_at: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Ticket:
    project_id: str
    ticket_number: int
    title: str
    type: str
    priority: str
    reporter_id: str
    description: str = ""
    status: str = TicketStatus.TODO
    assignee_id: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    due_date: Optional[str] = None
    order: float = 0
    sprint_id: Optional[str] = None
    attachments: List[str] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Comment:
    ticket_id: str
    user_id: str
    content: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    parent_id: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class ActivityLog:
    """Audit trail entry. `details` holds a JSON string of sanitized values."""

    project_id: str
    user_id: str
    action: str
    details: str = "{}"
    ticket_id: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Notification:
    user_id: str
    type: str
    title: str
    message: str
    project_id: str = ""
    read: bool = False
    action_url: str = ""
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Sprint:
    project_id: str
    name: str
    start_date: str
    end_date: str
    goal: str = ""
    status: str = SprintStatus.PLANNING
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class UserRecord:
    """Public profile of a registered user."""

    id: str
    name: str
    email: str
