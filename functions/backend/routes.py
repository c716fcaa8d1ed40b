"""
HTTP routes exposing the tracker functions on the FastAPI service.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from backend.config import Settings, get_settings
from backend.dependencies import (
    get_document_store,
    get_storage_client,
    get_user_directory,
)
from backend.schemas import FunctionEnvelope, FunctionListResponse, HealthResponse
from backend.storage import StorageClient
from backend.store import DocumentStore
from backend.users import UserDirectory
from tracker.registry import FunctionContext, invoke, load_functions

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(settings: Settings = Depends(get_settings)):
    return HealthResponse(
        status="ok",
        store_backend=settings.store_backend,
        functions=len(load_functions()),
    )


@router.get("/functions", response_model=FunctionListResponse)
def list_functions():
    return FunctionListResponse(functions=sorted(load_functions()))


@router.post("/functions/{name}", response_model=FunctionEnvelope)
async def call_function(
    name: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    store: DocumentStore = Depends(get_document_store),
    users: UserDirectory = Depends(get_user_directory),
    storage: StorageClient = Depends(get_storage_client),
):
    """
    Runs a tracker function with the raw JSON body of the request.

    The caller is identified by the trusted user-id header. The HTTP status
    mirrors the envelope code.
    """
    ctx = FunctionContext(
        store=store,
        users=users,
        storage=storage,
        user_id=request.headers.get(settings.user_id_header) or None,
        attachments_prefix=settings.attachments_prefix,
    )
    body = await request.body()
    result = invoke(name, ctx, body, max_body_length=settings.max_body_length)
    if not result.success:
        logger.info("%s returned %s: %s", name, result.code, result.error)
    return JSONResponse(status_code=result.code, content=result.to_dict())
