"""
Portal Backend - Storage Route Handlers
=========================================

What:  Upload, list, download and delete user files in the storage buckets.
How:   Thin wrappers over StorageService; ownership is encoded in the stored
       file name ({user_id}_...), so no database rows are involved.

Endpoints:
    POST   /api/storage                        multipart upload (file, bucket)
    GET    /api/storage                        your 10 most recent files
    DELETE /api/storage?path=...&bucket=...    delete one of your files
    GET    /api/storage/{bucket}/{path}        download; public buckets need no session

Rate limits:
    uploads use the UPLOAD scope, list/delete the GENERAL scope.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, Response

from portal.dependencies import RequestLogger, get_optional_session, get_storage, require_session
from portal.logger import Logger
from portal.middleware.rate_limit import RateLimitGuard
from portal.operation_result import success_response
from portal.rate_limit import RateLimitScope
from portal.schemas.storage import StoredFileResponse
from portal.security import SessionUser
from portal.services.storage_service import DEFAULT_BUCKET, StorageService, StoredFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/storage", tags=["Storage"])


def _to_response(stored: StoredFile) -> StoredFileResponse:
    return StoredFileResponse(
        name=stored.name,
        bucket=stored.bucket,
        path=stored.path,
        url=stored.url,
        size=stored.size,
        content_type=stored.content_type,
        created_at=stored.created_at,
    )


@router.post(
    "",
    status_code=201,
    summary="Upload a file",
    dependencies=[Depends(RateLimitGuard(RateLimitScope.UPLOAD))],
)
async def upload_file(
    file: UploadFile = File(..., description="File to store"),
    bucket: str = Form(default=DEFAULT_BUCKET),
    session: SessionUser = Depends(require_session),
    storage: StorageService = Depends(get_storage),
    log: Logger = Depends(RequestLogger("api/storage")),
) -> JSONResponse:
    content = await file.read()
    logger.info(
        "Received upload: filename=%s, size=%d bytes, bucket=%s",
        file.filename or "unknown",
        len(content),
        bucket,
    )
    stored = await storage.upload(
        session.user_id, bucket, file.filename, content, file.content_type
    )
    log.info("File uploaded", bucket=bucket, path=stored.path, size=stored.size)
    return success_response(
        {"file": _to_response(stored)},
        "File uploaded successfully",
        status_code=201,
    )


@router.get(
    "",
    summary="List your recent files",
    dependencies=[Depends(RateLimitGuard(RateLimitScope.GENERAL))],
)
async def list_files(
    session: SessionUser = Depends(require_session),
    storage: StorageService = Depends(get_storage),
) -> JSONResponse:
    files = await storage.list_recent(session.user_id)
    return success_response({"files": [_to_response(f) for f in files]})


@router.delete(
    "",
    summary="Delete one of your files",
    dependencies=[Depends(RateLimitGuard(RateLimitScope.GENERAL))],
)
async def delete_file(
    path: str = Query(..., min_length=1),
    bucket: str = Query(default=DEFAULT_BUCKET),
    session: SessionUser = Depends(require_session),
    storage: StorageService = Depends(get_storage),
    log: Logger = Depends(RequestLogger("api/storage")),
) -> JSONResponse:
    await storage.delete(session.user_id, bucket, path)
    log.info("File deleted", bucket=bucket, path=path)
    return success_response({"deleted": True}, "File deleted successfully")


@router.get("/{bucket}/{file_path:path}", summary="Download a stored file")
async def download_file(
    bucket: str,
    file_path: str,
    session: Optional[SessionUser] = Depends(get_optional_session),
    storage: StorageService = Depends(get_storage),
) -> Response:
    content, content_type = await storage.read(
        session.user_id if session else None, bucket, file_path
    )
    policy = storage.get_bucket(bucket)
    filename = file_path.rsplit("/", 1)[-1]
    return Response(
        content=content,
        media_type=content_type,
        headers={
            "Content-Disposition": f'inline; filename="{filename}"',
            "Cache-Control": "public, max-age=86400" if policy.public else "private, max-age=0",
        },
    )
