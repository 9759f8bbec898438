"""Video repositories for database operations.

Each repository wraps the request's AsyncSession; callers commit through the
get_db dependency.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import case, delete, literal_column, select, update, func as sql_func
from sqlalchemy.ext.asyncio import AsyncSession

from interviews_media.modules.video.models import (
    ProcessingStatus,
    ProcessingType,
    Recording,
    StorageStatistics,
    VideoFile,
    VideoProcessingQueue,
)


class RecordingRepository:
    """Repository for interview recordings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_owner_id(self, recording_id: int) -> Optional[int]:
        """Get the host user id of a recording, or None if it does not exist."""
        result = await self.session.execute(
            select(Recording.host_user_id).where(Recording.id == recording_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        host_user_id: int,
        title: Optional[str] = None,
        started_at: Optional[datetime] = None,
        recording_id: Optional[int] = None,
    ) -> Recording:
        recording = Recording(
            host_user_id=host_user_id,
            title=title,
            started_at=started_at,
        )
        if recording_id is not None:
            recording.id = recording_id

        self.session.add(recording)
        await self.session.flush()
        await self.session.refresh(recording)
        return recording


class VideoFileRepository:
    """Repository for stored video files."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **fields) -> VideoFile:
        video_file = VideoFile(**fields)
        self.session.add(video_file)
        await self.session.flush()
        await self.session.refresh(video_file)
        return video_file

    async def get_active_for_recording(self, recording_id: int) -> Optional[VideoFile]:
        """Get the original video of a recording.

        The original is the most recently created file that is not deleted.
        """
        result = await self.session.execute(
            select(VideoFile)
            .where(
                VideoFile.recording_id == recording_id,
                VideoFile.deleted_at.is_(None),
            )
            .order_by(VideoFile.created_at.desc(), VideoFile.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_owner(
        self,
        owner_id: int,
        limit: int = 20,
        offset: int = 0,
        format: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> tuple[list[tuple[VideoFile, Recording]], int]:
        """List non-deleted files of recordings hosted by a user.

        Args:
            owner_id: Host user id
            limit: Page size
            offset: Number of rows to skip
            format: Only files with this extension
            date_from: Only files created at or after this time
            date_to: Only files created at or before this time

        Returns:
            tuple: (rows of (VideoFile, Recording), total matching count)
        """
        conditions = [
            Recording.host_user_id == owner_id,
            VideoFile.deleted_at.is_(None),
        ]
        if format:
            conditions.append(VideoFile.format == format)
        if date_from:
            conditions.append(VideoFile.created_at >= date_from)
        if date_to:
            conditions.append(VideoFile.created_at <= date_to)

        count_result = await self.session.execute(
            select(sql_func.count(VideoFile.id))
            .select_from(VideoFile)
            .join(Recording, VideoFile.recording_id == Recording.id)
            .where(*conditions)
        )
        total = count_result.scalar_one() or 0

        result = await self.session.execute(
            select(VideoFile, Recording)
            .join(Recording, VideoFile.recording_id == Recording.id)
            .where(*conditions)
            .order_by(VideoFile.created_at.desc(), VideoFile.id.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = [(row[0], row[1]) for row in result.all()]
        return rows, total

    async def soft_delete(self, recording_id: int, deleted_at: datetime) -> int:
        """Mark every live file of a recording as deleted."""
        result = await self.session.execute(
            update(VideoFile)
            .where(
                VideoFile.recording_id == recording_id,
                VideoFile.deleted_at.is_(None),
            )
            .values(deleted_at=deleted_at)
        )
        return result.rowcount or 0

    async def hard_delete(self, video_file: VideoFile) -> None:
        await self.session.execute(delete(VideoFile).where(VideoFile.id == video_file.id))

    async def list_for_recording(self, recording_id: int) -> list[VideoFile]:
        result = await self.session.execute(
            select(VideoFile).where(VideoFile.recording_id == recording_id)
        )
        return list(result.scalars().all())

    async def list_older_than(self, cutoff: datetime) -> list[VideoFile]:
        """List live files created before the cutoff, oldest first."""
        result = await self.session.execute(
            select(VideoFile)
            .where(VideoFile.created_at < cutoff, VideoFile.deleted_at.is_(None))
            .order_by(VideoFile.created_at.asc())
        )
        return list(result.scalars().all())

    def _scope(self, query, owner_id: Optional[int]):
        query = query.select_from(VideoFile).where(VideoFile.deleted_at.is_(None))
        if owner_id is not None:
            query = query.join(Recording, VideoFile.recording_id == Recording.id).where(
                Recording.host_user_id == owner_id
            )
        return query

    async def stats_for_owner(self, owner_id: Optional[int]) -> dict:
        """Aggregate count, size and age of live files.

        Args:
            owner_id: Host user id, or None for every user

        Returns:
            dict: total_files, total_size, avg_file_size, oldest_file,
                newest_file, unique_formats
        """
        query = self._scope(
            select(
                sql_func.count(VideoFile.id),
                sql_func.coalesce(sql_func.sum(VideoFile.file_size), 0),
                sql_func.avg(VideoFile.file_size),
                sql_func.min(VideoFile.created_at),
                sql_func.max(VideoFile.created_at),
                sql_func.count(sql_func.distinct(VideoFile.format)),
            ),
            owner_id,
        )
        result = await self.session.execute(query)
        count, total, avg, oldest, newest, formats = result.one()
        return {
            "total_files": count or 0,
            "total_size": int(total or 0),
            "avg_file_size": int(avg or 0),
            "oldest_file": oldest,
            "newest_file": newest,
            "unique_formats": formats or 0,
        }

    async def format_distribution(self, owner_id: Optional[int]) -> list[tuple[str, int, int]]:
        """Count and size of live files per format, largest count first."""
        query = self._scope(
            select(
                VideoFile.format,
                sql_func.count(VideoFile.id),
                sql_func.coalesce(sql_func.sum(VideoFile.file_size), 0),
            ),
            owner_id,
        )
        query = query.group_by(VideoFile.format).order_by(
            sql_func.count(VideoFile.id).desc(), VideoFile.format
        )
        result = await self.session.execute(query)
        return [(fmt, count, int(size or 0)) for fmt, count, size in result.all()]

    async def size_distribution(
        self, owner_id: Optional[int], buckets: list[tuple[str, int]], overflow_label: str
    ) -> list[tuple[str, int, int]]:
        """Count and size of live files per size bucket, smallest bucket first.

        Args:
            owner_id: Host user id, or None for every user
            buckets: (label, exclusive upper bound in bytes), ascending
            overflow_label: Label of files at or above the last bound

        Returns:
            list: (label, count, total size) for non-empty buckets
        """
        bucket = case(
            *[(VideoFile.file_size < bound, label) for label, bound in buckets],
            else_=overflow_label,
        ).label("size_range")
        query = self._scope(
            select(
                bucket,
                sql_func.count(VideoFile.id),
                sql_func.coalesce(sql_func.sum(VideoFile.file_size), 0),
            ),
            owner_id,
        )
        query = query.group_by(literal_column("size_range")).order_by(
            sql_func.min(VideoFile.file_size)
        )
        result = await self.session.execute(query)
        return [(label, count, int(size or 0)) for label, count, size in result.all()]

    async def list_sizes_since(
        self, owner_id: Optional[int], since: datetime
    ) -> list[tuple[datetime, int]]:
        """Creation time and size of live files created at or after ``since``."""
        query = self._scope(
            select(VideoFile.created_at, VideoFile.file_size), owner_id
        ).where(VideoFile.created_at >= since).order_by(VideoFile.created_at.asc())
        result = await self.session.execute(query)
        return [(created_at, size) for created_at, size in result.all()]

    async def count_for_owner(
        self,
        owner_id: int,
        larger_than: Optional[int] = None,
        created_before: Optional[datetime] = None,
    ) -> int:
        query = self._scope(select(sql_func.count(VideoFile.id)), owner_id)
        if larger_than is not None:
            query = query.where(VideoFile.file_size > larger_than)
        if created_before is not None:
            query = query.where(VideoFile.created_at < created_before)
        result = await self.session.execute(query)
        return result.scalar_one() or 0

    async def list_oldest_for_owner(self, owner_id: int) -> list[VideoFile]:
        query = self._scope(select(VideoFile), owner_id).order_by(
            VideoFile.created_at.asc(), VideoFile.id.asc()
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_recordings(self) -> int:
        result = await self.session.execute(
            select(sql_func.count(sql_func.distinct(VideoFile.recording_id))).where(
                VideoFile.deleted_at.is_(None)
            )
        )
        return result.scalar_one() or 0


class ProcessingQueueRepository:
    """Repository for processing queue entries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        recording_id: int,
        processing_type: str,
        status: str = ProcessingStatus.PENDING.value,
        processing_params: Optional[str] = None,
        output_path: Optional[str] = None,
    ) -> VideoProcessingQueue:
        entry = VideoProcessingQueue(
            recording_id=recording_id,
            processing_type=processing_type,
            status=status,
            processing_params=processing_params,
            output_path=output_path,
        )
        self.session.add(entry)
        await self.session.flush()
        await self.session.refresh(entry)
        return entry

    async def list_completed_compressions(
        self, recording_id: int
    ) -> list[VideoProcessingQueue]:
        """Completed compression jobs of a recording, newest first."""
        result = await self.session.execute(
            select(VideoProcessingQueue)
            .where(
                VideoProcessingQueue.recording_id == recording_id,
                VideoProcessingQueue.processing_type == ProcessingType.COMPRESSION.value,
                VideoProcessingQueue.status == ProcessingStatus.COMPLETED.value,
            )
            .order_by(
                VideoProcessingQueue.created_at.desc(),
                VideoProcessingQueue.id.desc(),
            )
        )
        return list(result.scalars().all())

    async def count_by_status(self, status: str) -> int:
        result = await self.session.execute(
            select(sql_func.count(VideoProcessingQueue.id)).where(
                VideoProcessingQueue.status == status
            )
        )
        return result.scalar_one() or 0

    async def delete_for_recording(self, recording_id: int) -> None:
        await self.session.execute(
            delete(VideoProcessingQueue).where(
                VideoProcessingQueue.recording_id == recording_id
            )
        )


class StorageStatisticsRepository:
    """Repository for daily storage snapshots."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_date(self, snapshot_date: date) -> Optional[StorageStatistics]:
        result = await self.session.execute(
            select(StorageStatistics).where(
                StorageStatistics.snapshot_date == snapshot_date
            )
        )
        return result.scalar_one_or_none()

    async def upsert_for_date(self, snapshot_date: date, **totals) -> StorageStatistics:
        """Create or overwrite the snapshot row of a day."""
        snapshot = await self.get_for_date(snapshot_date)
        if snapshot is None:
            snapshot = StorageStatistics(snapshot_date=snapshot_date, **totals)
            self.session.add(snapshot)
        else:
            for key, value in totals.items():
                setattr(snapshot, key, value)

        await self.session.flush()
        await self.session.refresh(snapshot)
        return snapshot
