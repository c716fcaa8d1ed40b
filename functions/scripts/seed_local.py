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
Seeds a local development store with a user and a project owned by them.

Example:
    TRACKER_STORE_BACKEND=sql TRACKER_DATABASE_URL=sqlite:///tracker.db \
        python3 scripts/seed_local.py --email dev@example.com --project-key DEV
"""

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.config import get_settings
from backend.dependencies import (
    get_document_store,
    get_storage_client,
    get_user_directory,
)
from backend.users import StoreUserDirectory
from tracker.registry import FunctionContext, invoke

logger = logging.getLogger(__name__)


def seed(args) -> int:
    users = get_user_directory()
    if not isinstance(users, StoreUserDirectory):
        logger.error("Seeding needs a local store, not %s", type(users).__name__)
        return 1

    user = users.find_by_email(args.email)
    if user is None:
        user = users.add_user(args.name, args.email, uid=args.uid)
    else:
        logger.info("User %s already exists", args.email)

    ctx = FunctionContext(
        store=get_document_store(),
        users=users,
        storage=get_storage_client(),
        user_id=user.id,
        attachments_prefix=get_settings().attachments_prefix,
    )
    result = invoke(
        "create-project",
        ctx,
        json.dumps(
            {
                "name": args.project_name,
                "key": args.project_key,
                "description": args.description,
            }
        ),
    )
    if not result.success:
        logger.error("Could not create project: %s", result.error)
        return 1

    logger.info(
        "Seeded project %s (%s) owned by %s",
        result.data["id"],
        result.data["key"],
        user.id,
    )
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Seed a user and a project into the configured store."
    )
    parser.add_argument("--email", required=True, help="Email of the seeded user")
    parser.add_argument("--name", default="Local Developer", help="Display name")
    parser.add_argument("--uid", default=None, help="Fixed user id (optional)")
    parser.add_argument(
        "--project-name", default="Local Project", help="Name of the project"
    )
    parser.add_argument(
        "--project-key", default="LOC", help="Project key, 2-5 uppercase letters"
    )
    parser.add_argument("--description", default="", help="Project description")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    settings = get_settings()
    if settings.store_backend == "memory":
        logger.warning("The in-memory store is discarded when this script exits")
    return seed(args)


if __name__ == "__main__":
    raise SystemExit(main())
