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

"""Request body parsing, input validation and sanitization."""

import json
import math
import re
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional

from shared import constants
from shared.errors import ValidationError
from shared.types import ProjectRole, TicketPriority, TicketStatus, TicketType

_ID_RE = re.compile(constants.ID_PATTERN)
_EMAIL_RE = re.compile(constants.EMAIL_PATTERN)
_PROJECT_KEY_RE = re.compile(constants.PROJECT_KEY_PATTERN)

_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}


def parse_body(raw: Any, max_length: int = constants.MAX_BODY_LENGTH) -> dict:
    """
    Decodes a function request body into a dict.

    Raises ValidationError for oversized, malformed or non-object bodies.
    A missing body is treated as an empty object.
    """
    if raw is None or raw == "" or raw == b"":
        return {}
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError("Invalid request body")
    if isinstance(raw, str):
        if len(raw) > max_length:
            raise ValidationError("Invalid request body")
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError("Invalid request body")
    if not isinstance(raw, dict):
        raise ValidationError("Invalid request body")
    return raw


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_ID_RE.match(value))


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))


def is_valid_role(value: Any) -> bool:
    return value in list(ProjectRole)


def is_valid_status(value: Any) -> bool:
    return value in list(TicketStatus)


def is_valid_order(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if not math.isfinite(value):
        return False
    return 0 <= value <= constants.MAX_ORDER


def is_valid_date(value: Any) -> bool:
    if not isinstance(value, str) or not value:
        return False
    candidate = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        datetime.fromisoformat(candidate)
        return True
    except ValueError:
        pass
    try:
        date.fromisoformat(value)
        return True
    except ValueError:
        return False


def parse_date(value: str) -> datetime:
    candidate = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=None)


def require_id(value: Any, name: str) -> str:
    """Validates a required id, e.g. name="ticket" for `ticketId`."""
    if not value:
        raise ValidationError(f"{name.capitalize()} ID is required")
    if not is_valid_id(value):
        raise ValidationError(f"Invalid {name} ID format")
    return value


def sanitize_string(value: Any) -> Any:
    """HTML-escapes a string; other values are returned unchanged."""
    if not isinstance(value, str):
        return value
    return "".join(_HTML_ESCAPES.get(char, char) for char in value)


def sanitize_for_json(value: Any) -> Any:
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, list):
        return [sanitize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {
            sanitize_string(key): sanitize_for_json(item)
            for key, item in value.items()
        }
    return value


def valid_choices(values: Any, allowed: Iterable[str]) -> list[str]:
    """Keeps the entries of a filter list that are allowed values."""
    if not isinstance(values, list):
        return []
    allowed = list(allowed)
    return [value for value in values if value in allowed]


def validate_project(data: dict) -> list[str]:
    errors = []

    name = data.get("name")
    if not name or not isinstance(name, str):
        errors.append("Project name is required")
    elif not (
        constants.PROJECT_NAME_MIN_LENGTH
        <= len(name.strip())
        <= constants.PROJECT_NAME_MAX_LENGTH
    ):
        errors.append("Project name must be between 3 and 100 characters")

    key = data.get("key")
    if not key or not isinstance(key, str):
        errors.append("Project key is required")
    elif not _PROJECT_KEY_RE.match(key.strip()):
        errors.append("Project key must be 2-5 uppercase letters")

    description = data.get("description")
    if description and not isinstance(description, str):
        errors.append("Description must be a string")
    elif description and len(description) > constants.PROJECT_DESCRIPTION_MAX_LENGTH:
        errors.append("Description must be less than 2000 characters")

    return errors


def label_errors(labels: Any) -> Optional[str]:
    if not isinstance(labels, list):
        return "Labels must be an array"
    if any(
        not isinstance(label, str) or len(label) > constants.MAX_LABEL_LENGTH
        for label in labels
    ):
        return "Each label must be a string with max 50 characters"
    return None


def attachment_errors(attachments: Any) -> Optional[str]:
    if not isinstance(attachments, list):
        return "Attachments must be an array"
    if len(attachments) > constants.MAX_ATTACHMENTS:
        return "A ticket can have at most 20 attachments"
    if not all(is_valid_id(item) for item in attachments):
        return "Invalid attachment ID format"
    return None


def validate_ticket(data: dict) -> list[str]:
    errors = []

    title = data.get("title")
    if not title or not isinstance(title, str):
        errors.append("Ticket title is required")
    elif not (
        constants.TICKET_TITLE_MIN_LENGTH
        <= len(title.strip())
        <= constants.TICKET_TITLE_MAX_LENGTH
    ):
        errors.append("Ticket title must be between 5 and 200 characters")

    project_id = data.get("projectId")
    if not project_id or not isinstance(project_id, str):
        errors.append("Project ID is required")
    elif not is_valid_id(project_id):
        errors.append("Invalid Project ID format")

    if data.get("type") not in list(TicketType):
        errors.append(
            "Invalid ticket type. Must be one of: " + ", ".join(TicketType)
        )

    if data.get("priority") not in list(TicketPriority):
        errors.append(
            "Invalid priority. Must be one of: " + ", ".join(TicketPriority)
        )

    description = data.get("description")
    if description and not isinstance(description, str):
        errors.append("Description must be a string")
    elif description and len(description) > constants.TICKET_DESCRIPTION_MAX_LENGTH:
        errors.append("Description must be less than 10000 characters")

    if data.get("labels"):
        message = label_errors(data["labels"])
        if message:
            errors.append(message)

    if data.get("dueDate") and not is_valid_date(data["dueDate"]):
        errors.append("Invalid due date format")

    if data.get("assigneeId") and not is_valid_id(data["assigneeId"]):
        errors.append("Invalid assignee ID format")

    if data.get("sprintId") and not is_valid_id(data["sprintId"]):
        errors.append("Invalid sprint ID format")

    if data.get("attachments"):
        message = attachment_errors(data["attachments"])
        if message:
            errors.append(message)

    return errors


def content_error(content: Any) -> Optional[str]:
    if not content or not isinstance(content, str):
        return "Comment content is required"
    if not content.strip() or len(content) > constants.MAX_COMMENT_LENGTH:
        return "Comment must be between 1 and 5000 characters"
    return None


def validate_comment(data: dict) -> list[str]:
    errors = []

    ticket_id = data.get("ticketId")
    if not ticket_id or not isinstance(ticket_id, str):
        errors.append("Ticket ID is required")
    elif not is_valid_id(ticket_id):
        errors.append("Invalid ticket ID format")

    message = content_error(data.get("content"))
    if message:
        errors.append(message)

    return errors


def validate_sprint(data: dict, partial: bool = False) -> list[str]:
    """Checks sprint fields; with ``partial`` only the fields present."""
    errors = []

    if not partial or "name" in data:
        name = data.get("name")
        if not name or not isinstance(name, str):
            errors.append("Sprint name is required")
        elif not (
            constants.SPRINT_NAME_MIN_LENGTH
            <= len(name.strip())
            <= constants.SPRINT_NAME_MAX_LENGTH
        ):
            errors.append("Sprint name must be between 3 and 100 characters")

    goal = data.get("goal")
    if goal and not isinstance(goal, str):
        errors.append("Goal must be a string")
    elif goal and len(goal) > constants.SPRINT_GOAL_MAX_LENGTH:
        errors.append("Goal must be less than 500 characters")

    dates_ok = True
    for key, label in (("startDate", "start date"), ("endDate", "end date")):
        if partial and key not in data:
            continue
        if not is_valid_date(data.get(key)):
            errors.append(f"Invalid {label} format")
            dates_ok = False

    if (
        dates_ok
        and data.get("startDate")
        and data.get("endDate")
        and parse_date(data["endDate"]) < parse_date(data["startDate"])
    ):
        errors.append("End date must not be before start date")

    return errors


def raise_for_errors(errors: list[str]) -> None:
    if errors:
        raise ValidationError(", ".join(errors))


def clamp_limit(value: Any, default: int, maximum: int) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    if limit < 1:
        return default if limit == 0 else 1
    return min(limit, maximum)


def clamp_offset(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0
