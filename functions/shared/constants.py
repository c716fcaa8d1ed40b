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

"""Constants shared by the tracker functions and the service backend."""

# Collections
PROJECTS_COLLECTION = "projects"
PROJECT_MEMBERS_COLLECTION = "project_members"
TICKETS_COLLECTION = "tickets"
COMMENTS_COLLECTION = "comments"
ACTIVITY_LOGS_COLLECTION = "activity_logs"
NOTIFICATIONS_COLLECTION = "notifications"
SPRINTS_COLLECTION = "sprints"
USERS_COLLECTION = "users"

# Request limits
MAX_BODY_LENGTH = 1024 * 1024
ID_PATTERN = r"^[a-zA-Z0-9_-]+$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
PROJECT_KEY_PATTERN = r"^[A-Z]{2,5}$"

PROJECT_NAME_MIN_LENGTH = 3
PROJECT_NAME_MAX_LENGTH = 100
PROJECT_DESCRIPTION_MAX_LENGTH = 2000

TICKET_TITLE_MIN_LENGTH = 5
TICKET_TITLE_MAX_LENGTH = 200
TICKET_DESCRIPTION_MAX_LENGTH = 10000
MAX_LABEL_LENGTH = 50
MAX_ATTACHMENTS = 20
MAX_ORDER = 1_000_000

MAX_COMMENT_LENGTH = 5000

SPRINT_NAME_MIN_LENGTH = 3
SPRINT_NAME_MAX_LENGTH = 100
SPRINT_GOAL_MAX_LENGTH = 500

MAX_SEARCH_QUERY_LENGTH = 200
DEFAULT_SEARCH_LIMIT = 50
MAX_SEARCH_LIMIT = 100

DEFAULT_ACTIVITY_LIMIT = 20
DEFAULT_NOTIFICATION_LIMIT = 50
MAX_PAGE_LIMIT = 100

# Full scans (get-tickets, member listing) page through the store in batches.
LIST_BATCH_SIZE = 500

UNKNOWN_USER_NAME = "Unknown"
