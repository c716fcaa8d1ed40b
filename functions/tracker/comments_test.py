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

from shared.constants import ACTIVITY_LOGS_COLLECTION, COMMENTS_COLLECTION, NOTIFICATIONS_COLLECTION
from backend.store import Query
from tracker import testing_utils
from tracker.testing_utils import OWNER_ID, add_member, as_user, call


class ManageCommentsTest(unittest.TestCase):

    def setUp(self):
        self.ctx = testing_utils.create_context()
        testing_utils.register_user(self.ctx, OWNER_ID, name="Olive Owner")
        testing_utils.register_user(self.ctx, "dev-1", name="Dana Dev")
        testing_utils.register_user(self.ctx, "dev-2", name="Eli Dev")
        self.project = testing_utils.create_project(self.ctx)
        add_member(self.ctx, self.project["id"], "dev-1", "developer")
        add_member(self.ctx, self.project["id"], "dev-2", "developer")
        add_member(self.ctx, self.project["id"], "viewer-1", "viewer")
        self.ticket = testing_utils.create_ticket(
            self.ctx, self.project["id"], assigneeId="dev-1"
        )

    def comment(self, content, user_id=OWNER_ID, parent_id=None):
        data = {"content": content}
        if parent_id:
            data["parentId"] = parent_id
        return call(
            as_user(self.ctx, user_id),
            "manage-comments",
            {"action": "create", "ticketId": self.ticket["id"], "data": data},
        )

    def notifications(self, type):
        return self.ctx.store.list(
            NOTIFICATIONS_COLLECTION, Query(equal={"type": type})
        ).documents

    def test_create_sanitizes_and_sets_author(self):
        result = self.comment("<script>alert('x')</script>", user_id="dev-2")

        self.assertTrue(result.success, result.error)
        comment = result.data
        self.assertEqual(
            comment["content"],
            "&lt;script&gt;alert(&#x27;x&#x27;)&lt;&#x2F;script&gt;",
        )
        self.assertEqual(comment["authorId"], "dev-2")
        self.assertEqual(comment["authorName"], "Eli Dev")
        self.assertEqual(comment["authorEmail"], "dev-2@example.com")
        self.assertIsNone(comment["parentId"])
        self.assertEqual(comment["user"]["name"], "Eli Dev")
        logs = self.ctx.store.list(
            ACTIVITY_LOGS_COLLECTION, Query(equal={"action": "comment_added"})
        )
        self.assertEqual(logs.total, 1)

    def test_create_notifies_reporter_and_assignee_once(self):
        self.comment("Looks good", user_id="dev-2")

        recipients = sorted(n["userId"] for n in self.notifications("comment_added"))
        self.assertEqual(recipients, ["dev-1", OWNER_ID])
        self.assertEqual(
            self.notifications("comment_added")[0]["message"],
            "New comment on ticket: Fix the login page",
        )

    def test_caller_is_not_notified(self):
        self.comment("Note to self", user_id="dev-1")

        recipients = [n["userId"] for n in self.notifications("comment_added")]
        self.assertEqual(recipients, [OWNER_ID])

    def test_reply_notifies_parent_author(self):
        parent = self.comment("Question?", user_id="dev-2").data

        reply = self.comment("Answer.", user_id=OWNER_ID, parent_id=parent["id"])

        self.assertTrue(reply.success, reply.error)
        self.assertEqual(reply.data["parentId"], parent["id"])
        recipients = sorted(n["userId"] for n in self.notifications("comment_reply"))
        self.assertEqual(recipients, ["dev-1", "dev-2"])

    def test_reply_parent_checks(self):
        missing = self.comment("Reply", parent_id="missing")
        self.assertEqual(missing.code, 404)
        self.assertEqual(missing.error, "Parent comment not found")

        other_ticket = testing_utils.create_ticket(
            self.ctx, self.project["id"], title="Another ticket"
        )
        foreign = call(
            self.ctx,
            "manage-comments",
            {
                "action": "create",
                "ticketId": other_ticket["id"],
                "data": {"content": "Elsewhere"},
            },
        ).data
        result = self.comment("Reply", parent_id=foreign["id"])
        self.assertEqual(result.code, 400)
        self.assertEqual(
            result.error, "Parent comment does not belong to the same ticket"
        )

    def test_create_validation(self):
        self.assertEqual(self.comment("   ").error, "Comment must be between 1 and 5000 characters")
        self.assertEqual(
            self.comment("x" * 5001).error,
            "Comment must be between 1 and 5000 characters",
        )
        result = call(
            self.ctx, "manage-comments", {"action": "create", "data": {"content": "Hi"}}
        )
        self.assertEqual(result.error, "Ticket ID is required")

    def test_viewer_can_comment(self):
        result = self.comment("Viewer here", user_id="viewer-1")

        self.assertTrue(result.success, result.error)

    def test_list_oldest_first_with_users(self):
        self.comment("First", user_id="dev-1")
        self.comment("Second", user_id="dev-2")

        result = call(
            self.ctx, "manage-comments", {"action": "list", "ticketId": self.ticket["id"]}
        )

        self.assertEqual(result.data["total"], 2)
        self.assertEqual(
            [c["content"] for c in result.data["documents"]], ["First", "Second"]
        )
        self.assertEqual(result.data["documents"][1]["user"]["name"], "Eli Dev")

    def test_list_requires_membership(self):
        result = call(
            as_user(self.ctx, "stranger"),
            "manage-comments",
            {"action": "list", "ticketId": self.ticket["id"]},
        )

        self.assertEqual(result.code, 403)

    def test_only_author_can_edit(self):
        comment = self.comment("Original", user_id="dev-1").data

        denied = call(
            as_user(self.ctx, "dev-2"),
            "manage-comments",
            {"action": "update", "commentId": comment["id"], "data": {"content": "Hacked"}},
        )
        self.assertEqual(denied.code, 403)
        self.assertEqual(denied.error, "You can only edit your own comments")

        updated = call(
            as_user(self.ctx, "dev-1"),
            "manage-comments",
            {"action": "update", "commentId": comment["id"], "data": {"content": "A & B"}},
        )
        self.assertEqual(updated.data["content"], "A &amp; B")

    def test_delete_removes_reply_tree(self):
        root = self.comment("Root", user_id="dev-1").data
        child = self.comment("Child", user_id="dev-2", parent_id=root["id"]).data
        self.comment("Grandchild", user_id="dev-1", parent_id=child["id"])
        keep = self.comment("Unrelated", user_id="dev-2").data

        result = call(
            as_user(self.ctx, "dev-1"),
            "manage-comments",
            {"action": "delete", "commentId": root["id"]},
        )

        self.assertEqual(result.data, {"deleted": True})
        remaining = self.ctx.store.list(COMMENTS_COLLECTION).documents
        self.assertEqual([c["id"] for c in remaining], [keep["id"]])

    def test_delete_permissions(self):
        comment = self.comment("Mine", user_id="dev-1").data

        denied = call(
            as_user(self.ctx, "dev-2"),
            "manage-comments",
            {"action": "delete", "commentId": comment["id"]},
        )
        self.assertEqual(denied.code, 403)

        allowed = call(
            self.ctx,
            "manage-comments",
            {"action": "delete", "commentId": comment["id"]},
        )
        self.assertTrue(allowed.success, allowed.error)

    def test_invalid_action(self):
        result = call(self.ctx, "manage-comments", {"action": "pin"})

        self.assertEqual(result.error, "Invalid action")


if __name__ == "__main__":
    unittest.main()
