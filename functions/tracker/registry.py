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
Function registry: one entry per tracker function, invoked through a single
wrapper that authenticates, parses the body and builds the response envelope.
"""

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from backend.storage import StorageClient
from backend.store import DocumentNotFound, DocumentStore
from backend.users import UserDirectory
from shared.api import FunctionResponse, error, success
from shared.constants import MAX_BODY_LENGTH
from shared.errors import TrackerError, UnauthorizedError
from tracker.validation import parse_body

logger = logging.getLogger(__name__)

_FUNCTION_MODULES = (
    "tracker.projects",
    "tracker.tickets",
    "tracker.comments",
    "tracker.members",
    "tracker.sprints",
    "tracker.notifications",
    "tracker.activity",
)


@dataclass
class FunctionContext:
    """Per-invocation dependencies and the authenticated caller."""

    store: DocumentStore
    users: UserDirectory
    storage: StorageClient
    user_id: Optional[str] = None
    attachments_prefix: str = "attachments"

    def attachment_path(self, file_id: str) -> str:
        return f"{self.attachments_prefix}/{file_id}"


Handler = Callable[[FunctionContext, dict], Any]


@dataclass
class TrackerFunction:
    name: str
    handler: Handler
    failure_message: str


FUNCTIONS: Dict[str, TrackerFunction] = {}


def tracker_function(name: str, failure_message: str):
    """Registers a handler under its public function name."""

    def decorator(handler: Handler) -> Handler:
        FUNCTIONS[name] = TrackerFunction(
            name=name, handler=handler, failure_message=failure_message
        )
        return handler

    return decorator


def load_functions() -> Dict[str, TrackerFunction]:
    for module_name in _FUNCTION_MODULES:
        importlib.import_module(module_name)
    return FUNCTIONS


def invoke(
    name: str,
    ctx: FunctionContext,
    raw_body: Any,
    max_body_length: int = MAX_BODY_LENGTH,
) -> FunctionResponse:
    """
    Runs a registered function and converts its outcome to an envelope.

    TrackerError subclasses carry their own message and code. Any other
    exception is logged and reported with the function's generic failure
    message and code 500.
    """
    function = load_functions().get(name)
    if function is None:
        return error("Unknown function", 404)

    try:
        if not ctx.user_id:
            raise UnauthorizedError("Unauthorized")
        body = parse_body(raw_body, max_body_length)
        data = function.handler(ctx, body)
    except TrackerError as e:
        return error(e.message, e.code)
    except DocumentNotFound as e:
        logger.warning("%s: %s", name, e)
        return error("Resource not found", 404)
    except Exception:
        logger.exception("Error in %s for user %s", name, ctx.user_id)
        return error(function.failure_message, 500)
    return success(data)
