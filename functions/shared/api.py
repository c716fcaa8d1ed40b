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

"""Wire envelope returned by every tracker function."""

from dataclasses import asdict, dataclass
from typing import Any, Optional


@dataclass
class FunctionResponse:
    """Uniform `{success, data|error}` envelope."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    code: int = 200

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error, "code": self.code}


def success(data: Any) -> FunctionResponse:
    return FunctionResponse(success=True, data=data)


def error(message: str, code: int = 400) -> FunctionResponse:
    return FunctionResponse(success=False, error=message, code=code)


@dataclass
class PaginatedResult:
    documents: list
    total: int

    def to_dict(self) -> dict:
        return asdict(self)
