"""
Pydantic schemas for the FastAPI service.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel


class FunctionEnvelope(BaseModel):
    """Uniform response of every tracker function."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    code: Optional[int] = None


class FunctionListResponse(BaseModel):
    functions: list[str]


class HealthResponse(BaseModel):
    status: Literal["ok"]
    store_backend: str
    functions: int
