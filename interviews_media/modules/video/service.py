"""Video storage service.

Composes the repositories, the managed storage root and the authorization
service. Every operation that reveals or changes a recording's video checks
ownership first; errors are raised as APIError subclasses.
"""

import json
import logging
import math
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from interviews_media.core.config import settings
from interviews_media.core.errors import BadRequest, Forbidden, NotFound
from interviews_media.core.metrics import VIDEO_QUALITY_LADDER_SIZE
from interviews_media.core.storage import InvalidPathToken, LocalStorage, StorageError, decode_path_token
from interviews_media.core.tracing import add_span_attributes
from interviews_media.modules.auth.schemas import Principal, Role
from interviews_media.modules.auth.service import AuthorizationService, parse_recording_id
from interviews_media.modules.video.models import ProcessingStatus, VideoFile
from interviews_media.modules.video.quality import resolve_quality_ladder
from interviews_media.modules.video.repository import (
    ProcessingQueueRepository,
    StorageStatisticsRepository,
    VideoFileRepository,
)
from interviews_media.modules.video.schemas import (
    DEFAULT_VIDEO_MIME_TYPE,
    VIDEO_MIME_TYPES,
    AvailableSpace,
    CleanupResult,
    DeleteVideoResult,
    FormatUsage,
    Pagination,
    QualityLadder,
    QuotaEnforcementResult,
    StorageStats,
    StoredVideo,
    VideoFileList,
    VideoFileListItem,
    VideoFileMetadata,
    VideoListFilters,
)

logger = logging.getLogger(__name__)

GIB = 1024 * 1024 * 1024
QUOTA_TARGET_RATIO = 0.9

_SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]

# Metadata keys stored in their own columns rather than in the JSON blob
_COLUMN_METADATA_KEYS = ("original_filename", "width", "height", "duration", "bitrate")


class VideoNotFoundError(NotFound):
    default_message = "Video file not found"


class InvalidFileError(BadRequest):
    """Raised when a file offered for storage is rejected."""


def format_file_size(size: int) -> str:
    """Format a byte count for display, e.g. ``1.5 KB``.

    Uses 1024-based units and at most two decimals.
    """
    if size <= 0:
        return "0 B"

    power = min(int(math.log(size, 1024)), len(_SIZE_UNITS) - 1)
    # log() can land just below an exact power of 1024
    if power + 1 < len(_SIZE_UNITS) and size >= 1024 ** (power + 1):
        power += 1
    value = f"{size / 1024**power:.2f}".rstrip("0").rstrip(".")
    return f"{value} {_SIZE_UNITS[power]}"


def mime_type_for(extension: str) -> str:
    return VIDEO_MIME_TYPES.get(extension.lower(), DEFAULT_VIDEO_MIME_TYPE)


def recording_id_from_path(path: Path) -> str:
    """Recording id encoded in a stored file name.

    Originals are stored as ``<recording_id>.<ext>``, compressed renditions as
    ``<recording_id>_<quality>.<ext>``.
    """
    return path.stem.split("_", 1)[0]


class VideoStorageService:
    """Service for stored recordings, their renditions and storage usage."""

    def __init__(
        self,
        session: AsyncSession,
        storage: LocalStorage,
        authz: Optional[AuthorizationService] = None,
    ):
        """Initialize video storage service.

        Args:
            session: Async SQLAlchemy session
            storage: Managed storage root
            authz: Authorization service, built from the session if omitted
        """
        self.session = session
        self.storage = storage
        self.authz = authz or AuthorizationService(session)
        self.file_repo = VideoFileRepository(session)
        self.queue_repo = ProcessingQueueRepository(session)
        self.stats_repo = StorageStatisticsRepository(session)

    @property
    def quota_bytes(self) -> int:
        return settings.STORAGE_QUOTA_GB * GIB

    def _to_metadata(self, video_file: VideoFile) -> VideoFileMetadata:
        return VideoFileMetadata(
            id=video_file.id,
            recording_id=video_file.recording_id,
            original_filename=video_file.original_filename,
            storage_path=video_file.storage_path,
            file_size=video_file.file_size,
            format=video_file.format,
            mime_type=video_file.mime_type,
            width=video_file.width,
            height=video_file.height,
            duration=video_file.duration,
            bitrate=video_file.bitrate,
            processing_status=video_file.processing_status,
            created_at=video_file.created_at,
            url=self.storage.stream_url(video_file.storage_path),
            exists=self.storage.exists(video_file.storage_path),
        )

    async def _get_owned_file(self, principal: Principal, recording_id: int | str) -> VideoFile:
        await self.authz.require_owner(principal, recording_id)
        video_file = await self.file_repo.get_active_for_recording(
            parse_recording_id(recording_id)
        )
        if video_file is None:
            raise VideoNotFoundError()
        return video_file

    # ============================================
    # Read access
    # ============================================
    async def get_video_file(
        self, principal: Principal, recording_id: int | str
    ) -> VideoFileMetadata:
        """Get metadata of a recording's original video.

        Raises:
            Forbidden: Caller does not host the recording
            VideoNotFoundError: Recording has no active video file
        """
        video_file = await self._get_owned_file(principal, recording_id)
        return self._to_metadata(video_file)

    async def resolve_qualities(
        self, principal: Principal, recording_id: int | str
    ) -> QualityLadder:
        """Get the quality ladder of a recording.

        Raises:
            Forbidden: Caller does not host the recording
            VideoNotFoundError: Recording has no active video file
        """
        video_file = await self._get_owned_file(principal, recording_id)
        compressions = await self.queue_repo.list_completed_compressions(
            video_file.recording_id
        )

        ladder = resolve_quality_ladder(
            video_file.recording_id, video_file, compressions, self.storage
        )
        VIDEO_QUALITY_LADDER_SIZE.observe(len(ladder.qualities))
        add_span_attributes(
            {
                "video.recording_id": ladder.recording_id,
                "video.quality_count": len(ladder.qualities),
            }
        )
        return ladder

    async def open_stream(self, principal: Principal, token: str) -> Path:
        """Resolve a stream token to a file the caller may read.

        The recording is identified by the file name of the stored path.

        Raises:
            NotFound: Token invalid, path outside storage or file missing
            Forbidden: Caller does not host the recording
        """
        try:
            relative_path = decode_path_token(token)
            full_path = self.storage.resolve(relative_path)
        except InvalidPathToken as e:
            raise NotFound("File not found") from e
        except StorageError as e:
            logger.warning(
                "Stream path rejected",
                extra={"user_id": principal.id, "reason": str(e)},
            )
            raise NotFound("File not found") from e

        if not full_path.is_file():
            raise NotFound("File not found")

        recording_id = recording_id_from_path(full_path)
        if not await self.authz.is_owner(principal, recording_id):
            logger.info(
                "Stream access denied",
                extra={"user_id": principal.id, "recording_id": recording_id},
            )
            raise Forbidden()

        add_span_attributes({"video.recording_id": recording_id})
        return full_path

    async def list_video_files(
        self,
        principal: Principal,
        page: int = 1,
        limit: int = 20,
        filters: Optional[VideoListFilters] = None,
    ) -> VideoFileList:
        """List the caller's own video files, newest first."""
        filters = filters or VideoListFilters()
        page = max(page, 1)
        limit = max(limit, 1)

        rows, total = await self.file_repo.list_for_owner(
            principal.id,
            limit=limit,
            offset=(page - 1) * limit,
            format=filters.format,
            date_from=filters.date_from,
            date_to=filters.date_to,
        )

        files = [
            VideoFileListItem(
                **self._to_metadata(video_file).model_dump(),
                recording_title=recording.title,
                recording_date=recording.started_at,
            )
            for video_file, recording in rows
        ]

        return VideoFileList(
            files=files,
            pagination=Pagination(
                current_page=page,
                total_items=total,
                items_per_page=limit,
                total_pages=math.ceil(total / limit) if total else 0,
            ),
        )

    # ============================================
    # Write access
    # ============================================
    async def store_video(
        self,
        principal: Principal,
        recording_id: int,
        source_path: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> StoredVideo:
        """Move a captured file into managed storage and record it.

        Args:
            principal: Authenticated caller, must host the recording
            recording_id: Recording the file belongs to
            source_path: Location of the captured file relative to the
                storage root, usually under the temp directory
            metadata: Optional media metadata and extra attributes

        Returns:
            StoredVideo: Stored file description

        Raises:
            Forbidden: Caller does not host the recording
            InvalidFileError: Source missing, unsupported format or too large
        """
        await self.authz.require_owner(principal, recording_id)
        metadata = dict(metadata or {})

        try:
            source = self.storage.resolve(source_path)
        except StorageError as e:
            raise InvalidFileError("Source file does not exist") from e
        if not source.is_file():
            raise InvalidFileError("Source file does not exist")

        extension = (source.suffix.lstrip(".") or "mp4").lower()
        if extension not in settings.ALLOWED_VIDEO_FORMATS:
            raise InvalidFileError(f"Unsupported file format: {extension}")

        file_size = source.stat().st_size
        if file_size > settings.MAX_FILE_SIZE:
            raise InvalidFileError("File size exceeds maximum allowed size")

        storage_path = self.storage.generate_storage_path(recording_id, extension)
        self.storage.store_file(source, storage_path)

        columns = {key: metadata.pop(key) for key in _COLUMN_METADATA_KEYS if key in metadata}
        columns.setdefault("original_filename", source.name)
        mime_type = mime_type_for(extension)

        await self.file_repo.create(
            recording_id=recording_id,
            storage_path=storage_path,
            file_size=file_size,
            format=extension,
            mime_type=mime_type,
            file_metadata=json.dumps(metadata, default=str) if metadata else None,
            **columns,
        )

        logger.info(
            "Video stored",
            extra={
                "recording_id": recording_id,
                "storage_path": storage_path,
                "file_size": file_size,
            },
        )

        return StoredVideo(
            recording_id=recording_id,
            storage_path=storage_path,
            file_size=file_size,
            format=extension,
            mime_type=mime_type,
            url=self.storage.stream_url(storage_path),
            metadata=metadata,
        )

    async def delete_video_file(
        self,
        principal: Principal,
        recording_id: int | str,
        hard_delete: bool = False,
    ) -> DeleteVideoResult:
        """Delete the video of a recording owned by the caller."""
        video_file = await self._get_owned_file(principal, recording_id)
        return await self._delete(video_file.recording_id, hard_delete)

    def _delete_output(self, output_path: Optional[str]) -> None:
        if not output_path:
            return
        try:
            self.storage.delete(self.storage.relative_to_root(output_path))
        except StorageError:
            logger.warning("Rendition outside storage root left in place", extra={"path": output_path})

    async def _delete(self, recording_id: int, hard_delete: bool) -> DeleteVideoResult:
        if hard_delete:
            for video_file in await self.file_repo.list_for_recording(recording_id):
                try:
                    self.storage.delete(video_file.storage_path)
                except StorageError:
                    logger.warning(
                        "Stored path outside storage root, row removed only",
                        extra={"video_file_id": video_file.id},
                    )
                await self.file_repo.hard_delete(video_file)
            for entry in await self.queue_repo.list_completed_compressions(recording_id):
                self._delete_output(entry.output_path)
            await self.queue_repo.delete_for_recording(recording_id)
        else:
            await self.file_repo.soft_delete(recording_id, datetime.now(timezone.utc))

        deleted_type = "hard" if hard_delete else "soft"
        add_span_attributes({"video.recording_id": recording_id, "video.delete": deleted_type})
        logger.info(
            "Video deleted",
            extra={"recording_id": recording_id, "deleted_type": deleted_type},
        )
        return DeleteVideoResult(recording_id=recording_id, deleted_type=deleted_type)

    # ============================================
    # Storage accounting
    # ============================================
    async def get_storage_stats(
        self, principal: Principal, all_users: bool = False
    ) -> StorageStats:
        """Storage usage of the caller, or of every user for admins.

        Raises:
            Forbidden: all_users requested without the admin role
        """
        if all_users and not self.authz.has_role(principal, Role.ADMIN):
            raise Forbidden("Admin access required")

        owner_id = None if all_users else principal.id
        return await self._storage_stats(owner_id)

    async def _storage_stats(self, owner_id: Optional[int]) -> StorageStats:
        totals = await self.file_repo.stats_for_owner(owner_id)
        distribution = await self.file_repo.format_distribution(owner_id)

        quota = self.quota_bytes
        disk_free = self.storage.disk_free()

        return StorageStats(
            total_files=totals["total_files"],
            total_size=totals["total_size"],
            total_size_formatted=format_file_size(totals["total_size"]),
            avg_file_size=totals["avg_file_size"],
            avg_file_size_formatted=format_file_size(totals["avg_file_size"]),
            oldest_file=totals["oldest_file"],
            newest_file=totals["newest_file"],
            format_distribution=[
                FormatUsage(format=fmt, count=count, total_size=size)
                for fmt, count, size in distribution
            ],
            quota_used_percent=round(totals["total_size"] / quota * 100, 2),
            available_space=AvailableSpace(
                quota_available=quota,
                disk_available=disk_free,
                effective_available=min(quota, disk_free),
                quota_available_formatted=format_file_size(quota),
                disk_available_formatted=format_file_size(disk_free),
            ),
        )

    async def cleanup_old_files(self, days_old: Optional[int] = None) -> CleanupResult:
        """Hard-delete live files older than the cutoff."""
        days_old = settings.CLEANUP_DAYS if days_old is None else days_old
        cutoff = datetime.now(timezone.utc) - timedelta(days=days_old)

        old_files = await self.file_repo.list_older_than(cutoff)
        deleted_files = 0
        space_freed = 0
        seen: set[int] = set()

        for video_file in old_files:
            if video_file.recording_id in seen:
                continue
            seen.add(video_file.recording_id)
            size = video_file.file_size
            await self._delete(video_file.recording_id, hard_delete=True)
            deleted_files += 1
            space_freed += size

        logger.info(
            "Old video files cleaned up",
            extra={"deleted_files": deleted_files, "space_freed": space_freed},
        )
        return CleanupResult(
            deleted_files=deleted_files,
            space_freed=space_freed,
            space_freed_formatted=format_file_size(space_freed),
            cutoff_date=cutoff,
        )

    async def enforce_storage_quota(self, user_id: int) -> QuotaEnforcementResult:
        """Soft-delete a user's oldest files until usage is at most 90% of quota."""
        quota = self.quota_bytes
        totals = await self.file_repo.stats_for_owner(user_id)
        used = totals["total_size"]
        usage_percent = round(used / quota * 100, 1)

        if used <= quota:
            return QuotaEnforcementResult(quota_exceeded=False, usage_percent=usage_percent)

        target_reduction = used - quota * QUOTA_TARGET_RATIO
        deleted_files = 0
        space_freed = 0

        for video_file in await self.file_repo.list_oldest_for_owner(user_id):
            if space_freed >= target_reduction:
                break
            if video_file.deleted_at is not None:
                continue
            size = video_file.file_size
            await self._delete(video_file.recording_id, hard_delete=False)
            deleted_files += 1
            space_freed += size

        logger.warning(
            "Storage quota enforced",
            extra={
                "user_id": user_id,
                "deleted_files": deleted_files,
                "space_freed": space_freed,
            },
        )
        return QuotaEnforcementResult(
            quota_exceeded=True,
            usage_percent=usage_percent,
            deleted_files=deleted_files,
            space_freed=space_freed,
        )

    async def update_storage_statistics(self) -> dict:
        """Write today's storage snapshot."""
        distribution = await self.file_repo.format_distribution(None)
        totals = await self.file_repo.stats_for_owner(None)
        counts = {fmt: count for fmt, count, _ in distribution}
        mp4_files = counts.pop("mp4", 0)
        webm_files = counts.pop("webm", 0)

        today = datetime.now(timezone.utc).date()
        await self.stats_repo.upsert_for_date(
            today,
            total_files=totals["total_files"],
            total_recordings=await self.file_repo.count_recordings(),
            total_size_bytes=totals["total_size"],
            mp4_files=mp4_files,
            webm_files=webm_files,
            other_files=sum(counts.values()),
            pending_processing=await self.queue_repo.count_by_status(
                ProcessingStatus.PENDING.value
            ),
            failed_processing=await self.queue_repo.count_by_status(
                ProcessingStatus.FAILED.value
            ),
        )
        return {"date": today.isoformat(), "statistics_updated": True}

