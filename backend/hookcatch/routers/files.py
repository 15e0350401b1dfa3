"""File storage API endpoints.

Object store calls block (boto3, filesystem), so they run in the thread
pool and never stall capture responses served by the same loop.
"""

import io
import logging

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from hookcatch.core.background import run_sync
from hookcatch.core.context import AppContext, get_context
from hookcatch.core.database import get_db
from hookcatch.core.errors import InternalError, NotFoundError, ValidationError
from hookcatch.repositories.vector_entry_repository import VectorEntryRepository
from hookcatch.schemas.storage import FileEntryResponse, FileUploadResponse
from hookcatch.services.indexing import dispatch_index, dispatch_remove
from hookcatch.services.object_store import LocalObjectStore, ObjectStore, validate_key

logger = logging.getLogger(__name__)

router = APIRouter()

STORAGE_ERRORS = (OSError, BotoCoreError, ClientError)


def _media_type(request: Request) -> str:
    return (request.headers.get("content-type") or "").split(";")[0].strip().lower()


def _list_entries(
    store: ObjectStore, prefix: str | None, expires_in: int
) -> list[FileEntryResponse]:
    return [
        FileEntryResponse(
            key=info.key,
            size=info.size,
            etag=info.etag,
            created_at=info.created_at,
            url=store.presign(info.key, expires_in),
        )
        for info in store.list(prefix)
    ]


def _read_blob(store: ObjectStore, key: str) -> tuple[bytes, str]:
    stream = store.get(key)
    try:
        content = stream.read()
    finally:
        stream.close()
    media_type = store.metadata(key).get("content_type") or "application/octet-stream"
    return content, media_type


def _delete_blob(store: ObjectStore, key: str) -> bool:
    """Delete ``key`` if present; return whether it existed."""
    if not store.has(key):
        return False
    store.delete(key)
    return True


@router.get(
    "/",
    response_model=list[FileEntryResponse],
    summary="List files",
)
async def list_files(
    prefix: str | None = Query(default=None),
    context: AppContext = Depends(get_context),
) -> list[FileEntryResponse]:
    """List stored files with presigned download URLs."""
    try:
        return await run_sync(
            _list_entries,
            context.object_store,
            prefix,
            context.settings.PRESIGN_EXPIRES_SECONDS,
        )
    except STORAGE_ERRORS as exc:
        logger.exception("Failed to list files")
        raise InternalError("Failed to list files") from exc


@router.get(
    "/raw/{key:path}",
    summary="Download file via presigned URL",
    responses={
        403: {"description": "Invalid or expired signature"},
        404: {"description": "File not found"},
    },
)
async def download_file(
    key: str,
    expires: int = Query(...),
    signature: str = Query(...),
    context: AppContext = Depends(get_context),
) -> Response:
    """Serve a file for a URL produced by the local store's ``presign``."""
    store = context.object_store
    if not isinstance(store, LocalObjectStore):
        raise HTTPException(status_code=404, detail="Not found")
    validate_key(key)
    if not store.verify_presigned(key, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")

    content, media_type = await run_sync(_read_blob, store, key)
    return Response(content=content, media_type=media_type)


@router.put(
    "/{key:path}",
    response_model=FileUploadResponse,
    status_code=201,
    summary="Upload file",
    responses={422: {"description": "Validation error"}},
)
async def upload_file(
    key: str,
    request: Request,
    context: AppContext = Depends(get_context),
) -> FileUploadResponse:
    """Store the raw request body under ``key``.

    Text uploads are indexed for vector search in the background.
    """
    config = context.settings
    validate_key(key)
    content_type = _media_type(request)
    if content_type not in config.upload_allowed_content_types:
        raise ValidationError(
            f"Unsupported content type: {content_type or 'none'}", "content_type"
        )

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > config.UPLOAD_MAX_BYTES:
        raise ValidationError(f"File exceeds {config.UPLOAD_MAX_BYTES} bytes", "file")
    body = await request.body()
    if not body:
        raise ValidationError("File must not be empty", "file")
    if len(body) > config.UPLOAD_MAX_BYTES:
        raise ValidationError(f"File exceeds {config.UPLOAD_MAX_BYTES} bytes", "file")

    try:
        await run_sync(
            context.object_store.put, key, io.BytesIO(body), content_type=content_type
        )
    except STORAGE_ERRORS as exc:
        logger.exception("Failed to store %s", key)
        raise InternalError(f"Failed to store file {key}") from exc
    logger.info("Stored %s (%d bytes, %s)", key, len(body), content_type)

    indexing = content_type in config.indexable_content_types
    if indexing:
        await dispatch_index(context, key)
    return FileUploadResponse(
        key=key,
        size=len(body),
        content_type=content_type,
        indexing=indexing,
    )


@router.delete(
    "/{key:path}",
    status_code=204,
    summary="Delete file",
    responses={404: {"description": "Neither the file nor its vector entry exists"}},
)
async def delete_file(
    key: str,
    db: Session = Depends(get_db),
    context: AppContext = Depends(get_context),
) -> None:
    """Delete a file; its vector entry is removed in the background.

    A vector entry left behind by an earlier interrupted deletion is removed
    even though its blob is already gone.
    """
    validate_key(key)
    try:
        blob_existed = await run_sync(_delete_blob, context.object_store, key)
    except STORAGE_ERRORS as exc:
        logger.exception("Failed to delete %s", key)
        raise InternalError(f"Failed to delete file {key}") from exc

    if blob_existed:
        logger.info("Deleted %s", key)
    elif VectorEntryRepository(db).get(key) is not None:
        logger.warning("Removing orphaned vector entry for %s", key)
    else:
        raise NotFoundError("File", key)
    await dispatch_remove(context, key)
