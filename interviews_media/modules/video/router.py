"""Video API router.

JSON endpoints answer with the success envelope; the stream endpoint answers
with raw media bytes and plain-text errors.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, Query, status
from fastapi.responses import PlainTextResponse, Response
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from interviews_media.core.config import settings
from interviews_media.core.database import get_db
from interviews_media.core.errors import GENERIC_ERROR_MESSAGE, APIError, Unauthenticated
from interviews_media.core.logging import log_error
from interviews_media.core.metrics import VIDEO_STREAM_RESPONSES_TOTAL
from interviews_media.core.storage import LocalStorage, get_storage
from interviews_media.modules.auth.jwt import get_current_principal, principal_from_token, security
from interviews_media.modules.auth.schemas import Principal
from interviews_media.modules.video.schemas import (
    DeleteVideoRequest,
    DeleteVideoResult,
    QualityLadder,
    StorageStats,
    StoredVideo,
    StoreVideoRequest,
    SuccessResponse,
    VideoFileList,
    VideoFileMetadata,
    VideoListFilters,
)
from interviews_media.modules.video.service import VideoStorageService
from interviews_media.modules.video.streaming import build_media_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


def get_video_service(
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
) -> VideoStorageService:
    return VideoStorageService(db, storage)


@router.get("", response_model=SuccessResponse[VideoFileList])
async def list_video_files(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    format: Optional[str] = Query(None, max_length=16),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    principal: Principal = Depends(get_current_principal),
    service: VideoStorageService = Depends(get_video_service),
):
    """List the caller's video files."""
    filters = VideoListFilters(format=format, date_from=date_from, date_to=date_to)
    result = await service.list_video_files(principal, page=page, limit=limit, filters=filters)
    return SuccessResponse(data=result)


@router.get("/stats", response_model=SuccessResponse[StorageStats])
async def get_storage_stats(
    scope: str = Query("own", pattern="^(own|all)$"),
    principal: Principal = Depends(get_current_principal),
    service: VideoStorageService = Depends(get_video_service),
):
    """Get storage usage; ``scope=all`` covers every user and needs admin."""
    stats = await service.get_storage_stats(principal, all_users=scope == "all")
    return SuccessResponse(data=stats)


@router.post(
    "/store",
    response_model=SuccessResponse[StoredVideo],
    status_code=status.HTTP_201_CREATED,
)
async def store_video(
    data: StoreVideoRequest,
    principal: Principal = Depends(get_current_principal),
    service: VideoStorageService = Depends(get_video_service),
):
    """Move a captured recording file into managed storage."""
    stored = await service.store_video(
        principal, data.recording_id, data.source_path, data.metadata
    )
    return SuccessResponse(data=stored)


@router.get("/stream/{encoded_path:path}")
async def stream_video(
    encoded_path: str,
    range_header: Optional[str] = Header(None, alias="Range"),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    service: VideoStorageService = Depends(get_video_service),
) -> Response:
    """Stream a stored file with HTTP byte-range support.

    Errors are plain text so that media elements never receive JSON.
    """
    try:
        principal = principal_from_token(credentials.credentials) if credentials else None
        if principal is None:
            raise Unauthenticated()

        path = await service.open_stream(principal, encoded_path)
        response = build_media_response(path, range_header, settings.STREAM_CHUNK_SIZE)
    except APIError as e:
        VIDEO_STREAM_RESPONSES_TOTAL.labels(status_code=str(e.status_code)).inc()
        return PlainTextResponse(e.message, status_code=e.status_code, headers=e.headers or None)
    except Exception as e:
        log_error(logger, "Video stream failed", exception=e)
        VIDEO_STREAM_RESPONSES_TOTAL.labels(status_code="500").inc()
        return PlainTextResponse(
            GENERIC_ERROR_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    logger.info(
        "Video stream served",
        extra={
            "user_id": principal.id,
            "file": path.name,
            "status_code": response.status_code,
            "content_range": response.headers.get("content-range"),
            "content_length": response.headers.get("content-length"),
        },
    )
    return response


@router.get("/{recording_id}", response_model=SuccessResponse[VideoFileMetadata])
async def get_video_file(
    recording_id: str,
    principal: Principal = Depends(get_current_principal),
    service: VideoStorageService = Depends(get_video_service),
):
    """Get the video file of a recording."""
    video_file = await service.get_video_file(principal, recording_id)
    return SuccessResponse(data=video_file)


@router.get("/{recording_id}/qualities", response_model=SuccessResponse[QualityLadder])
async def get_video_qualities(
    recording_id: str,
    principal: Principal = Depends(get_current_principal),
    service: VideoStorageService = Depends(get_video_service),
):
    """Get the available playback qualities of a recording."""
    ladder = await service.resolve_qualities(principal, recording_id)
    return SuccessResponse(data=ladder)


@router.delete("/{recording_id}", response_model=SuccessResponse[DeleteVideoResult])
async def delete_video_file(
    recording_id: str,
    data: Optional[DeleteVideoRequest] = Body(None),
    principal: Principal = Depends(get_current_principal),
    service: VideoStorageService = Depends(get_video_service),
):
    """Delete the video of a recording (soft by default)."""
    hard_delete = data.hard_delete if data else False
    result = await service.delete_video_file(principal, recording_id, hard_delete)
    return SuccessResponse(data=result)
