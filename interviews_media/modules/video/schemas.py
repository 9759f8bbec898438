"""Pydantic schemas for the video module.

Request bodies reject unknown fields; responses are explicit records rather
than free-form dictionaries.
"""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

# MIME types by stored file extension
VIDEO_MIME_TYPES = {
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
}
DEFAULT_VIDEO_MIME_TYPE = "video/mp4"


class SuccessResponse(BaseModel, Generic[T]):
    """Envelope for successful JSON responses."""

    success: bool = True
    data: T


# ============================================
# Requests
# ============================================
class StoreVideoRequest(BaseModel):
    """Request schema for moving a captured file into managed storage."""

    model_config = ConfigDict(extra="forbid")

    recording_id: int = Field(..., gt=0)
    source_path: str = Field(..., min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class DeleteVideoRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hard_delete: bool = False


class VideoListFilters(BaseModel):
    """Query filters for listing video files."""

    format: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


# ============================================
# Responses
# ============================================
class VideoFileMetadata(BaseModel):
    """Metadata of a stored video file as returned to its owner."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    recording_id: int
    original_filename: Optional[str] = None
    storage_path: str
    file_size: int
    format: str
    mime_type: str
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[float] = None
    bitrate: Optional[int] = None
    processing_status: str
    created_at: Optional[datetime] = None
    url: str
    exists: bool


class QualityVariant(BaseModel):
    """A single playable rendition offered to the video player."""

    quality: str
    label: str
    width: int
    height: int
    bitrate: int
    file_size: int
    src: str
    type: str


class QualityLadder(BaseModel):
    """Ordered renditions of a recording, highest quality first."""

    recording_id: int
    qualities: list[QualityVariant]
    default_quality: str
    auto_quality_available: bool


class StoredVideo(BaseModel):
    recording_id: int
    storage_path: str
    file_size: int
    format: str
    mime_type: str
    url: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class Pagination(BaseModel):
    current_page: int
    total_items: int
    items_per_page: int
    total_pages: int


class VideoFileListItem(VideoFileMetadata):
    recording_title: Optional[str] = None
    recording_date: Optional[datetime] = None


class VideoFileList(BaseModel):
    files: list[VideoFileListItem]
    pagination: Pagination


class DeleteVideoResult(BaseModel):
    recording_id: int
    deleted_type: str  # "soft" or "hard"


class FormatUsage(BaseModel):
    format: str
    count: int
    total_size: int


class AvailableSpace(BaseModel):
    quota_available: int
    disk_available: int
    effective_available: int
    quota_available_formatted: str
    disk_available_formatted: str


class StorageStats(BaseModel):
    total_files: int
    total_size: int
    total_size_formatted: str
    avg_file_size: int
    avg_file_size_formatted: str
    oldest_file: Optional[datetime] = None
    newest_file: Optional[datetime] = None
    format_distribution: list[FormatUsage]
    quota_used_percent: float
    available_space: AvailableSpace


class CleanupResult(BaseModel):
    deleted_files: int
    space_freed: int
    space_freed_formatted: str
    cutoff_date: datetime


class QuotaEnforcementResult(BaseModel):
    quota_exceeded: bool
    usage_percent: float
    deleted_files: int = 0
    space_freed: int = 0
