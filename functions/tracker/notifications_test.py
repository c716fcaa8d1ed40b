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
from unittest.mock import patch

from shared.constants import NOTIFICATIONS_COLLECTION
from tracker import testing_utils
from tracker.notifications import notify_users
from tracker.testing_utils import OWNER_ID, as_user, call


class NotifyUsersTest(unittest.TestCase):

    def setUp(self):
        self.ctx = testing_utils.create_context()

    def test_deduplicates_recipients(self):
        created = notify_users(
            self.ctx.store,
            ["a", "b", "a"],
            project_id="p1",
            type="comment_added",
            title="New Comment",
            message="Hello",
        )

        self.assertEqual(created, 2)
        docs = self.ctx.store.list(NOTIFICATIONS_COLLECTION).documents
        self.assertEqual([d["userId"] for d in docs], ["a", "b"])
        self.assertFalse(docs[0]["read"])

    def test_failed_write_does_not_stop_other_recipients(self):
        original_create = self.ctx.store.create

        def flaky_create(collection, data, doc_id=None):
            if data["userId"] == "a":
                raise RuntimeError("write failed")
            return original_create(collection, data, doc_id)

        with patch.object(self.ctx.store, "create", side_effect=flaky_create):
            with self.assertLogs("tracker.notifications", level="WARNING"):
                created = notify_users(
                    self.ctx.store,
                    ["a", "b"],
                    project_id="p1",
                    type="member_added",
                    title="Added",
                    message="Hi",
                )

        self.assertEqual(created, 1)
        docs = self.ctx.store.list(NOTIFICATIONS_COLLECTION).documents
        self.assertEqual([d["userId"] for d in docs], ["b"])


class ManageNotificationsTest(unittest.TestCase):

    def setUp(self):
        self.ctx = testing_utils.create_context()
        for index in range(3):
            notify_users(
                self.ctx.store,
                [OWNER_ID],
                project_id="p1",
                type="comment_added",
                title=f"Comment {index}",
                message="New comment",
            )
        notify_users(
            self.ctx.store,
            ["someone-else"],
            project_id="p1",
            type="comment_added",
            title="Not yours",
            message="New comment",
        )

    def manage(self, action, user_id=OWNER_ID, **body):
        return call(
            as_user(self.ctx, user_id), "manage-notifications", {"action": action, **body}
        )

    def test_list_newest_first_for_caller_only(self):
        result = self.manage("list", limit=2)

        self.assertEqual(result.data["total"], 3)
        self.assertEqual(
            [n["title"] for n in result.data["documents"]], ["Comment 2", "Comment 1"]
        )

        result = self.manage("list", limit=2, offset=2)
        self.assertEqual([n["title"] for n in result.data["documents"]], ["Comment 0"])

    def test_unread_count_and_mark_read(self):
        self.assertEqual(self.manage("unreadCount").data, {"count": 3})

        first = self.manage("list").data["documents"][0]
        marked = self.manage("markRead", notificationId=first["id"])
        self.assertTrue(marked.data["read"])
        self.assertEqual(self.manage("unreadCount").data, {"count": 2})

        self.assertEqual(self.manage("markAllRead").data, {"updated": 2})
        self.assertEqual(self.manage("unreadCount").data, {"count": 0})
        self.assertEqual(
            self.manage("unreadCount", user_id="someone-else").data, {"count": 1}
        )

    def test_cannot_touch_other_users_notifications(self):
        foreign = self.manage("list", user_id="someone-else").data["documents"][0]

        for action in ("markRead", "delete"):
            result = self.manage(action, notificationId=foreign["id"])
            self.assertEqual(result.code, 403)
            self.assertEqual(
                result.error, "You can only modify your own notifications"
            )

    def test_delete(self):
        first = self.manage("list").data["documents"][0]

        self.assertEqual(
            self.manage("delete", notificationId=first["id"]).data, {"deleted": True}
        )
        self.assertEqual(self.manage("list").data["total"], 2)
        self.assertEqual(self.manage("delete", notificationId=first["id"]).code, 404)

    def test_invalid_action(self):
        self.assertEqual(self.manage("snooze").error, "Invalid action")


if __name__ == "__main__":
    unittest.main()
