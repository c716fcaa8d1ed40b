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
import unittest

from backend.store import DocumentNotFound
from shared.errors import NotFoundError
from tracker import registry, testing_utils
from tracker.testing_utils import as_user


class InvokeTest(unittest.TestCase):

    def setUp(self):
        self.ctx = testing_utils.create_context()
        self.calls = []

        @registry.tracker_function("echo", failure_message="Failed to echo")
        def echo(ctx, body):
            self.calls.append(body)
            if body.get("raise") == "missing":
                raise NotFoundError("Thing not found")
            if body.get("raise") == "document":
                raise DocumentNotFound("things", "t1")
            if body.get("raise") == "crash":
                raise RuntimeError("database exploded")
            return {"echo": body.get("value"), "user": ctx.user_id}

    def tearDown(self):
        registry.FUNCTIONS.pop("echo", None)

    def test_success_envelope(self):
        result = registry.invoke("echo", self.ctx, '{"value": 3}')

        self.assertEqual(
            result.to_dict(),
            {"success": True, "data": {"echo": 3, "user": "owner-1"}},
        )
        self.assertEqual(result.code, 200)

    def test_unauthorized_before_body_parsing(self):
        result = registry.invoke("echo", as_user(self.ctx, None), "{broken")

        self.assertEqual(
            result.to_dict(),
            {"success": False, "error": "Unauthorized", "code": 401},
        )
        self.assertEqual(self.calls, [])

    def test_tracker_errors_keep_message_and_code(self):
        result = registry.invoke("echo", self.ctx, '{"raise": "missing"}')

        self.assertEqual(result.code, 404)
        self.assertEqual(result.error, "Thing not found")

    def test_missing_document_maps_to_not_found(self):
        result = registry.invoke("echo", self.ctx, '{"raise": "document"}')

        self.assertEqual(result.code, 404)
        self.assertEqual(result.error, "Resource not found")

    def test_unexpected_errors_are_logged_and_hidden(self):
        with self.assertLogs("tracker.registry", level="ERROR") as logs:
            result = registry.invoke("echo", self.ctx, '{"raise": "crash"}')

        self.assertEqual(result.code, 500)
        self.assertEqual(result.error, "Failed to echo")
        self.assertIn("database exploded", "\n".join(logs.output))

    def test_unknown_function(self):
        result = registry.invoke("nope", self.ctx, "{}")

        self.assertEqual(result.code, 404)

    def test_all_functions_are_registered(self):
        names = set(registry.load_functions())

        self.assertTrue(
            {
                "create-project",
                "get-projects",
                "manage-project",
                "create-ticket",
                "get-tickets",
                "manage-ticket",
                "move-ticket",
                "search-tickets",
                "manage-comments",
                "invite-member",
                "manage-member",
                "manage-sprints",
                "manage-notifications",
                "get-activity",
            }.issubset(names)
        )


if __name__ == "__main__":
    unittest.main()
