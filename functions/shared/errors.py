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

"""Errors raised by tracker functions and turned into failure envelopes."""


class TrackerError(Exception):
    """Base class for errors reported back to the caller verbatim."""

    code = 400

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(TrackerError):
    code = 400


class UnauthorizedError(TrackerError):
    code = 401


class PermissionDeniedError(TrackerError):
    code = 403


class NotFoundError(TrackerError):
    code = 404
