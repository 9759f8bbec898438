"""Video storage models.

Recordings own exactly one active original video file; compressed renditions
are tracked as entries of the processing queue filled by the external
compression pipeline.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from interviews_media.core.database import Base


class ProcessingType(str, Enum):
    """Kinds of asynchronous video processing jobs."""

    COMPRESSION = "compression"
    THUMBNAIL = "thumbnail"
    METADATA = "metadata"


class ProcessingStatus(str, Enum):
    """Status of a processing queue entry."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FileProcessingStatus(str, Enum):
    """Storage-level status of an original video file."""

    STORED = "stored"


class Recording(Base):
    """A captured interview session.

    The host is fixed when the recording is created and is the only
    principal allowed to read its video.
    """

    __tablename__ = "interview_recordings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    host_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Recording {self.id} host={self.host_user_id}>"


class VideoFile(Base):
    """Stored video file belonging to a recording."""

    __tablename__ = "video_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recording_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("interview_recordings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    original_filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # Relative to the storage root, never exposed to clients directly
    storage_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    format: Mapped[str] = mapped_column(String(16), nullable=False, default="mp4")
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, default="video/mp4")

    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration: Mapped[Optional[float]] = mapped_column(nullable=True)  # seconds
    bitrate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # bps

    processing_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=FileProcessingStatus.STORED.value
    )
    file_metadata: Mapped[Optional[str]] = mapped_column("metadata", Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<VideoFile {self.id} recording={self.recording_id} {self.storage_path}>"


class VideoProcessingQueue(Base):
    """An asynchronous processing job and its outcome.

    processing_params is a JSON object; compression jobs carry the target
    quality label under "quality".
    """

    __tablename__ = "video_processing_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recording_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("interview_recordings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    processing_type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProcessingStatus.PENDING.value
    )
    processing_params: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    output_path: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<VideoProcessingQueue {self.id} {self.processing_type} {self.status}>"


class StorageStatistics(Base):
    """Daily snapshot of storage usage."""

    __tablename__ = "storage_statistics"

    snapshot_date: Mapped[date] = mapped_column("date", Date, primary_key=True)
    total_files: Mapped[int] = mapped_column(Integer, default=0)
    total_recordings: Mapped[int] = mapped_column(Integer, default=0)
    total_size_bytes: Mapped[int] = mapped_column(BigInteger, default=0)
    mp4_files: Mapped[int] = mapped_column(Integer, default=0)
    webm_files: Mapped[int] = mapped_column(Integer, default=0)
    other_files: Mapped[int] = mapped_column(Integer, default=0)
    pending_processing: Mapped[int] = mapped_column(Integer, default=0)
    failed_processing: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
