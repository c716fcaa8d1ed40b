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
import json
import unittest

from shared.constants import ACTIVITY_LOGS_COLLECTION
from tracker import testing_utils
from tracker.activity import parse_details, record_activity
from tracker.testing_utils import OWNER_ID, add_member, as_user, call


class RecordActivityTest(unittest.TestCase):

    def test_details_are_sanitized_json(self):
        ctx = testing_utils.create_context()

        entry = record_activity(
            ctx.store,
            project_id="p1",
            user_id="u1",
            action="ticket_updated",
            details={"title": "<b>Bold</b>", "labels": ["a/b"], "order": 2},
            ticket_id="t1",
        )

        self.assertEqual(entry["ticketId"], "t1")
        self.assertEqual(
            json.loads(entry["details"]),
            {
                "title": "&lt;b&gt;Bold&lt;&#x2F;b&gt;",
                "labels": ["a&#x2F;b"],
                "order": 2,
            },
        )

    def test_parse_details(self):
        self.assertEqual(parse_details('{"a": 1}'), {"a": 1})
        self.assertEqual(parse_details("not json"), {})
        self.assertEqual(parse_details("[1, 2]"), {})
        self.assertEqual(parse_details(None), {})


class GetActivityTest(unittest.TestCase):

    def setUp(self):
        self.ctx = testing_utils.create_context()
        testing_utils.register_user(self.ctx, OWNER_ID, name="Olive Owner")
        self.project = testing_utils.create_project(self.ctx)
        self.ticket = testing_utils.create_ticket(self.ctx, self.project["id"])
        call(
            self.ctx,
            "move-ticket",
            {"ticketId": self.ticket["id"], "newStatus": "in_progress"},
        )

    def activity(self, user_id=OWNER_ID, **body):
        return call(
            as_user(self.ctx, user_id),
            "get-activity",
            {"projectId": self.project["id"], **body},
        )

    def test_newest_first_with_parsed_details_and_users(self):
        result = self.activity()

        self.assertTrue(result.success, result.error)
        self.assertEqual(result.data["total"], 3)
        actions = [entry["action"] for entry in result.data["documents"]]
        self.assertEqual(actions, ["ticket_moved", "ticket_created", "project_created"])
        latest = result.data["documents"][0]
        self.assertEqual(latest["details"], {"from": "todo", "to": "in_progress"})
        self.assertEqual(latest["user"]["name"], "Olive Owner")

    def test_ticket_filter_and_limit(self):
        result = self.activity(ticketId=self.ticket["id"], limit=1)

        self.assertEqual(result.data["total"], 2)
        self.assertEqual(len(result.data["documents"]), 1)
        self.assertEqual(result.data["documents"][0]["action"], "ticket_moved")

        self.assertEqual(
            self.activity(ticketId="bad id").error, "Invalid ticket ID format"
        )

    def test_unparseable_details_become_empty(self):
        self.ctx.store.create(
            ACTIVITY_LOGS_COLLECTION,
            {
                "projectId": self.project["id"],
                "userId": "former-member",
                "action": "ticket_updated",
                "details": "{broken",
            },
        )

        latest = self.activity().data["documents"][0]

        self.assertEqual(latest["details"], {})
        self.assertEqual(latest["user"]["name"], "Unknown")

    def test_members_only(self):
        add_member(self.ctx, self.project["id"], "viewer-1", "viewer")

        self.assertTrue(self.activity(user_id="viewer-1").success)
        self.assertEqual(self.activity(user_id="stranger").code, 403)


if __name__ == "__main__":
    unittest.main()
