"""Quality ladder resolution for recordings.

The ladder always contains the original upload and adds every completed
compression whose output is still on disk. Dimensions and bitrate estimates
for compressed renditions come from a fixed table keyed by quality label.
"""

import json
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from interviews_media.core.storage import LocalStorage, StorageError
from interviews_media.modules.video.models import VideoFile, VideoProcessingQueue
from interviews_media.modules.video.schemas import QualityLadder, QualityVariant

logger = logging.getLogger(__name__)

COMPRESSED_MIME_TYPE = "video/mp4"


@dataclass(frozen=True)
class QualityProfile:
    """Nominal dimensions and bitrate of a quality label."""

    width: int
    height: int
    bitrate: int  # bps


QUALITY_PROFILES: dict[str, QualityProfile] = {
    "240p": QualityProfile(426, 240, 400_000),
    "360p": QualityProfile(640, 360, 800_000),
    "480p": QualityProfile(854, 480, 1_200_000),
    "720p": QualityProfile(1280, 720, 2_500_000),
    "1080p": QualityProfile(1920, 1080, 5_000_000),
    "1440p": QualityProfile(2560, 1440, 8_000_000),
    "2160p": QualityProfile(3840, 2160, 16_000_000),
}

# Labels not in the table are treated as 360p for sizing
DEFAULT_PROFILE = QualityProfile(640, 360, 800_000)

QUALITY_ORDER: dict[str, int] = {
    "240p": 1,
    "360p": 2,
    "480p": 3,
    "720p": 4,
    "1080p": 5,
    "1440p": 6,
    "2160p": 7,
}

# (minimum height, label), checked top-down
_HEIGHT_THRESHOLDS = (
    (2160, "2160p"),
    (1440, "1440p"),
    (1080, "1080p"),
    (720, "720p"),
    (480, "480p"),
    (360, "360p"),
)


def quality_from_height(height: Optional[int]) -> str:
    """Derive the quality label of a video from its pixel height."""
    height = height or 0
    for minimum, label in _HEIGHT_THRESHOLDS:
        if height >= minimum:
            return label
    return "240p"


def get_quality_profile(quality: str) -> QualityProfile:
    return QUALITY_PROFILES.get(quality, DEFAULT_PROFILE)


def estimate_bitrate(quality: str) -> int:
    """Nominal bitrate in bps for a quality label."""
    return get_quality_profile(quality).bitrate


def quality_order(quality: str) -> int:
    """Rank of a quality label; unknown labels rank below 240p."""
    return QUALITY_ORDER.get(quality, 0)


def parse_processing_params(raw: Optional[str]) -> dict:
    """Parse the JSON parameters of a processing job.

    Returns an empty dict for missing, malformed or non-object payloads.
    """
    if not raw:
        return {}
    try:
        params = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return params if isinstance(params, dict) else {}


def build_original_variant(video_file: VideoFile, storage: LocalStorage) -> QualityVariant:
    """Variant describing the originally uploaded file."""
    quality = quality_from_height(video_file.height)
    profile = get_quality_profile(quality)

    return QualityVariant(
        quality=quality,
        label=f"{quality} (Original)",
        width=video_file.width or profile.width,
        height=video_file.height or profile.height,
        bitrate=video_file.bitrate or profile.bitrate,
        file_size=video_file.file_size,
        src=storage.stream_url(video_file.storage_path),
        type=video_file.mime_type,
    )


def build_compressed_variant(
    entry: VideoProcessingQueue,
    storage: LocalStorage,
) -> Optional[QualityVariant]:
    """Variant for a completed compression job.

    Returns None when the job has no quality label or its output file is no
    longer present under the storage root.
    """
    params = parse_processing_params(entry.processing_params)
    quality = params.get("quality")
    if not isinstance(quality, str) or not quality or not entry.output_path:
        return None

    try:
        relative_path = storage.relative_to_root(entry.output_path)
    except StorageError:
        logger.warning(
            "Compressed output outside storage root",
            extra={"processing_id": entry.id, "recording_id": entry.recording_id},
        )
        return None

    if not storage.exists(relative_path):
        return None

    profile = get_quality_profile(quality)
    return QualityVariant(
        quality=quality,
        label=quality,
        width=profile.width,
        height=profile.height,
        bitrate=profile.bitrate,
        file_size=storage.file_size(relative_path),
        src=storage.stream_url(relative_path),
        type=COMPRESSED_MIME_TYPE,
    )


def resolve_quality_ladder(
    recording_id: int,
    video_file: VideoFile,
    completed_compressions: Iterable[VideoProcessingQueue],
    storage: LocalStorage,
) -> QualityLadder:
    """Build the ordered quality ladder for a recording.

    Args:
        recording_id: Recording the ladder belongs to
        video_file: Active original video file
        completed_compressions: Completed compression jobs, newest first
        storage: Storage root used to check outputs and build stream URLs

    Returns:
        QualityLadder sorted from highest to lowest quality
    """
    original = build_original_variant(video_file, storage)
    variants = [original]

    for entry in completed_compressions:
        variant = build_compressed_variant(entry, storage)
        if variant is not None:
            variants.append(variant)

    # sorted() is stable, equal labels keep insertion order
    variants = sorted(variants, key=lambda v: quality_order(v.quality), reverse=True)

    return QualityLadder(
        recording_id=recording_id,
        qualities=variants,
        default_quality=original.quality,
        auto_quality_available=len(variants) > 1,
    )
