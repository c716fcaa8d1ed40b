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

import re
from dataclasses import asdict
from typing import Any, Type, TypeVar

from dacite import Config, from_dict

T = TypeVar("T")

# Fields owned by the document store; never written from a dataclass.
DOCUMENT_METADATA_KEYS = ("id", "createdAt", "updatedAt")


def snake_to_camel(value: str) -> str:
    head, *rest = value.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(value: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower()


def convert_keys(data: Any, direction: str) -> Any:
    """
    Recursively converts dict keys between snake_case and camelCase.

    Args:
        data: A dict, list or scalar value.
        direction: Either "snake_to_camel" or "camel_to_snake".
    """
    if direction == "snake_to_camel":
        convert = snake_to_camel
    elif direction == "camel_to_snake":
        convert = camel_to_snake
    else:
        raise ValueError(f"Unknown conversion direction: {direction}")

    if isinstance(data, dict):
        return {
            convert(key) if isinstance(key, str) else key: convert_keys(
                value, direction
            )
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [convert_keys(item, direction) for item in data]
    return data


def to_document(item: Any) -> dict:
    """Dataclass -> camelCase document payload, without store metadata."""
    doc = convert_keys(asdict(item), "snake_to_camel")
    for key in DOCUMENT_METADATA_KEYS:
        doc.pop(key, None)
    return doc


def from_document(data_class: Type[T], doc: dict) -> T:
    return from_dict(
        data_class=data_class,
        data=convert_keys(doc, "camel_to_snake"),
        config=Config(check_types=False),
    )
