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

from shared.errors import ValidationError
from tracker import validation


class ParseBodyTest(unittest.TestCase):

    def test_missing_body_is_empty_object(self):
        self.assertEqual(validation.parse_body(None), {})
        self.assertEqual(validation.parse_body(""), {})
        self.assertEqual(validation.parse_body(b""), {})

    def test_decodes_json_objects(self):
        self.assertEqual(validation.parse_body('{"a": 1}'), {"a": 1})
        self.assertEqual(validation.parse_body(b'{"a": 1}'), {"a": 1})
        self.assertEqual(validation.parse_body({"a": 1}), {"a": 1})

    def test_rejects_bad_bodies(self):
        oversized = json.dumps({"text": "x" * 100})
        for raw in ("{oops", "[1, 2]", "42", b"\xff\xfe"):
            with self.assertRaises(ValidationError):
                validation.parse_body(raw)
        with self.assertRaises(ValidationError) as raised:
            validation.parse_body(oversized, max_length=50)
        self.assertEqual(raised.exception.message, "Invalid request body")


class FieldValidatorsTest(unittest.TestCase):

    def test_ids(self):
        self.assertTrue(validation.is_valid_id("abc_DEF-123"))
        self.assertFalse(validation.is_valid_id("has space"))
        self.assertFalse(validation.is_valid_id("../etc"))
        self.assertFalse(validation.is_valid_id(""))
        self.assertFalse(validation.is_valid_id(12))

    def test_require_id_messages(self):
        with self.assertRaises(ValidationError) as raised:
            validation.require_id(None, "project")
        self.assertEqual(raised.exception.message, "Project ID is required")
        with self.assertRaises(ValidationError) as raised:
            validation.require_id("a b", "project")
        self.assertEqual(raised.exception.message, "Invalid project ID format")

    def test_emails(self):
        self.assertTrue(validation.is_valid_email("dev@example.com"))
        self.assertFalse(validation.is_valid_email("dev@example"))
        self.assertFalse(validation.is_valid_email("dev @example.com"))

    def test_orders(self):
        self.assertTrue(validation.is_valid_order(0))
        self.assertTrue(validation.is_valid_order(1_000_000))
        self.assertTrue(validation.is_valid_order(2.5))
        self.assertFalse(validation.is_valid_order(-0.1))
        self.assertFalse(validation.is_valid_order(float("inf")))
        self.assertFalse(validation.is_valid_order(float("nan")))
        self.assertFalse(validation.is_valid_order(False))

    def test_dates(self):
        self.assertTrue(validation.is_valid_date("2025-03-01"))
        self.assertTrue(validation.is_valid_date("2025-03-01T10:00:00Z"))
        self.assertTrue(validation.is_valid_date("2025-03-01T10:00:00.123+02:00"))
        self.assertFalse(validation.is_valid_date("next week"))
        self.assertFalse(validation.is_valid_date(""))

    def test_roles_and_statuses(self):
        self.assertTrue(validation.is_valid_role("manager"))
        self.assertFalse(validation.is_valid_role("owner"))
        self.assertTrue(validation.is_valid_status("in_review"))
        self.assertFalse(validation.is_valid_status("closed"))


class SanitizeTest(unittest.TestCase):

    def test_escapes_html_characters(self):
        self.assertEqual(
            validation.sanitize_string("<a href='/x'>\"&\"</a>"),
            "&lt;a href=&#x27;&#x2F;x&#x27;&gt;&quot;&amp;&quot;&lt;&#x2F;a&gt;",
        )

    def test_non_strings_pass_through(self):
        self.assertEqual(validation.sanitize_string(5), 5)
        self.assertIsNone(validation.sanitize_string(None))

    def test_sanitize_for_json_is_recursive(self):
        self.assertEqual(
            validation.sanitize_for_json({"<k>": ["<v>", {"n": 1, "s": "a&b"}]}),
            {"&lt;k&gt;": ["&lt;v&gt;", {"n": 1, "s": "a&amp;b"}]},
        )


class EntityValidatorsTest(unittest.TestCase):

    def test_valid_project(self):
        self.assertEqual(
            validation.validate_project({"name": "Website", "key": "WEB"}), []
        )

    def test_project_errors(self):
        errors = validation.validate_project(
            {"key": "TOOLONG", "description": "d" * 2001}
        )
        self.assertEqual(
            errors,
            [
                "Project name is required",
                "Project key must be 2-5 uppercase letters",
                "Description must be less than 2000 characters",
            ],
        )

    def test_ticket_errors(self):
        errors = validation.validate_ticket(
            {
                "title": "Bug",
                "projectId": "p1",
                "type": "bug",
                "priority": "highest",
                "labels": "ui",
                "dueDate": "someday",
                "attachments": ["a"] * 21,
            }
        )
        self.assertEqual(
            errors,
            [
                "Ticket title must be between 5 and 200 characters",
                "Invalid priority. Must be one of: critical, high, medium, low",
                "Labels must be an array",
                "Invalid due date format",
                "A ticket can have at most 20 attachments",
            ],
        )

    def test_comment_errors(self):
        self.assertEqual(
            validation.validate_comment({"ticketId": "t 1", "content": ""}),
            ["Invalid ticket ID format", "Comment content is required"],
        )

    def test_sprint_dates_compared_in_utc(self):
        sprint = {
            "name": "Sprint 1",
            "startDate": "2025-01-02T01:00:00+05:00",
            "endDate": "2025-01-01T22:00:00Z",
        }
        self.assertEqual(validation.validate_sprint(sprint), [])

        sprint["endDate"] = "2025-01-01T19:00:00Z"
        self.assertEqual(
            validation.validate_sprint(sprint),
            ["End date must not be before start date"],
        )

    def test_parse_date_normalizes_offsets(self):
        self.assertEqual(
            validation.parse_date("2025-01-02T01:00:00+05:00"),
            validation.parse_date("2025-01-01T20:00:00Z"),
        )

    def test_raise_for_errors(self):
        validation.raise_for_errors([])
        with self.assertRaises(ValidationError) as raised:
            validation.raise_for_errors(["first", "second"])
        self.assertEqual(raised.exception.message, "first, second")


class PagingTest(unittest.TestCase):

    def test_clamp_limit(self):
        self.assertEqual(validation.clamp_limit(None, 50, 100), 50)
        self.assertEqual(validation.clamp_limit("20", 50, 100), 20)
        self.assertEqual(validation.clamp_limit(500, 50, 100), 100)
        self.assertEqual(validation.clamp_limit(0, 50, 100), 50)
        self.assertEqual(validation.clamp_limit(-3, 50, 100), 1)

    def test_clamp_offset(self):
        self.assertEqual(validation.clamp_offset(None), 0)
        self.assertEqual(validation.clamp_offset(-10), 0)
        self.assertEqual(validation.clamp_offset("7"), 7)


if __name__ == "__main__":
    unittest.main()
