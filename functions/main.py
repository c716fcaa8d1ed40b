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

# Cloud functions for the issue tracker backend.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Standard library imports
import json
from typing import Optional

# Third-party library imports
from firebase_admin import auth, exceptions, initialize_app
from firebase_functions import https_fn, logger, options

# Local application imports
from backend.config import get_settings
from backend.dependencies import (
    get_document_store,
    get_storage_client,
    get_user_directory,
)
from shared.api import FunctionResponse, error
from tracker.registry import FunctionContext, invoke, load_functions

initialize_app()

_settings = get_settings()
CORS = options.CorsOptions(
    cors_origins=_settings.cors_origins, cors_methods=["post", "options"]
)


def _caller_id(req: https_fn.Request) -> Optional[str]:
    """
    Resolves the calling user.

    A Firebase ID token in the Authorization header takes precedence; without
    one, the user id injected by the trusted gateway header is used.
    """
    authorization = req.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        token = authorization[len("Bearer ") :].strip()
        try:
            return auth.verify_id_token(token)["uid"]
        except (auth.InvalidIdTokenError, ValueError) as e:
            logger.warn(f"Rejected ID token: {e}")
            return None
    return req.headers.get(get_settings().user_id_header) or None


def _to_response(result: FunctionResponse) -> https_fn.Response:
    return https_fn.Response(
        json.dumps(result.to_dict()),
        status=result.code,
        mimetype="application/json",
    )


def _handle(name: str, req: https_fn.Request) -> https_fn.Response:
    """
    Runs one tracker function for an HTTP request.

    Args:
        name (str): The registered function name, e.g. "create-ticket".
        req (https_fn.Request): The incoming request with a JSON body.

    Returns:
        A JSON response carrying the {success, data | error} envelope.
    """
    if req.method != "POST":
        return _to_response(error("Method not allowed", 405))

    try:
        user_id = _caller_id(req)
    except exceptions.FirebaseError as e:
        logger.error(f"{name} could not verify the caller: {e}")
        return _to_response(error(load_functions()[name].failure_message, 500))

    settings = get_settings()
    ctx = FunctionContext(
        store=get_document_store(),
        users=get_user_directory(),
        storage=get_storage_client(),
        user_id=user_id,
        attachments_prefix=settings.attachments_prefix,
    )
    result = invoke(
        name,
        ctx,
        req.get_data(as_text=True),
        max_body_length=settings.max_body_length,
    )
    if not result.success and result.code >= 500:
        logger.error(f"{name} failed for user {ctx.user_id}: {result.error}")
    return _to_response(result)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def create_project(req: https_fn.Request) -> https_fn.Response:
    return _handle("create-project", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def get_projects(req: https_fn.Request) -> https_fn.Response:
    return _handle("get-projects", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_512)
def manage_project(req: https_fn.Request) -> https_fn.Response:
    """Project get/update/archive/restore, and delete with its full cascade."""
    return _handle("manage-project", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def create_ticket(req: https_fn.Request) -> https_fn.Response:
    return _handle("create-ticket", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_512)
def get_tickets(req: https_fn.Request) -> https_fn.Response:
    return _handle("get-tickets", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def manage_ticket(req: https_fn.Request) -> https_fn.Response:
    return _handle("manage-ticket", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def move_ticket(req: https_fn.Request) -> https_fn.Response:
    return _handle("move-ticket", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def search_tickets(req: https_fn.Request) -> https_fn.Response:
    return _handle("search-tickets", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def manage_comments(req: https_fn.Request) -> https_fn.Response:
    return _handle("manage-comments", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def invite_member(req: https_fn.Request) -> https_fn.Response:
    return _handle("invite-member", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def manage_member(req: https_fn.Request) -> https_fn.Response:
    return _handle("manage-member", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def manage_sprints(req: https_fn.Request) -> https_fn.Response:
    return _handle("manage-sprints", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def manage_notifications(req: https_fn.Request) -> https_fn.Response:
    return _handle("manage-notifications", req)


@https_fn.on_request(cors=CORS, memory=options.MemoryOption.MB_256)
def get_activity(req: https_fn.Request) -> https_fn.Response:
    return _handle("get-activity", req)
