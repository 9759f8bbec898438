"""HTTP byte-range serving of stored media files.

Only single ranges are supported. A range covering the whole file is
answered like a request without a Range header.
"""

import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from fastapi import status
from fastapi.responses import StreamingResponse

from interviews_media.core.errors import BadRequest, RangeNotSatisfiable
from interviews_media.core.metrics import VIDEO_STREAM_BYTES_TOTAL, VIDEO_STREAM_RESPONSES_TOTAL
from interviews_media.modules.video.schemas import DEFAULT_VIDEO_MIME_TYPE, VIDEO_MIME_TYPES

DEFAULT_MEDIA_TYPE = DEFAULT_VIDEO_MIME_TYPE
DEFAULT_CHUNK_SIZE = 64 * 1024

_RANGE_SPEC_RE = re.compile(r"^(\d*)-(\d*)$")


@dataclass(frozen=True)
class ByteRange:
    """An inclusive span of bytes within a file."""

    start: int
    end: int
    file_size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.file_size}"


def parse_range_header(header: Optional[str], file_size: int) -> Optional[ByteRange]:
    """Parse a Range header against a file of known size.

    Args:
        header: Raw Range header value, e.g. ``bytes=0-1023`` or ``bytes=-500``
        file_size: Size of the target file in bytes

    Returns:
        ByteRange | None: The requested span, or None when there is no header
            or the span covers the entire file

    Raises:
        BadRequest: Malformed syntax or more than one range
        RangeNotSatisfiable: Span outside the file, start after end, or
            empty file
    """
    if header is None or not header.strip():
        return None

    unit, sep, spec = header.strip().partition("=")
    if not sep or unit.strip().lower() != "bytes":
        raise BadRequest("Malformed Range header")

    spec = spec.strip()
    if "," in spec:
        raise BadRequest("Multiple ranges are not supported")

    match = _RANGE_SPEC_RE.match(spec.replace(" ", ""))
    if not match:
        raise BadRequest("Malformed Range header")

    first, last = match.groups()
    if not first and not last:
        raise BadRequest("Malformed Range header")

    if file_size <= 0:
        raise RangeNotSatisfiable(file_size)

    if not first:
        # Suffix form: the last N bytes
        suffix_length = int(last)
        if suffix_length == 0:
            raise RangeNotSatisfiable(file_size)
        start = max(0, file_size - suffix_length)
        end = file_size - 1
    else:
        start = int(first)
        end = int(last) if last else file_size - 1
        if start >= file_size or start > end:
            raise RangeNotSatisfiable(file_size)
        end = min(end, file_size - 1)

    if start == 0 and end == file_size - 1:
        return None
    return ByteRange(start=start, end=end, file_size=file_size)


def detect_media_type(path: Path) -> str:
    known = VIDEO_MIME_TYPES.get(path.suffix.lstrip(".").lower())
    if known:
        return known
    media_type, _ = mimetypes.guess_type(path.name)
    return media_type or DEFAULT_MEDIA_TYPE


def iter_file_span(
    path: Path,
    start: int,
    length: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[bytes]:
    """Yield exactly ``length`` bytes of a file starting at ``start``."""
    remaining = length
    with open(path, "rb") as f:
        f.seek(start)
        while remaining > 0:
            chunk = f.read(min(chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


def build_media_response(
    path: Path,
    range_header: Optional[str],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> StreamingResponse:
    """Build a 200 or 206 streaming response for a media file.

    Raises:
        BadRequest: Malformed Range header
        RangeNotSatisfiable: Range outside the file
    """
    file_size = path.stat().st_size
    byte_range = parse_range_header(range_header, file_size)
    headers = {"Accept-Ranges": "bytes"}

    if byte_range is None:
        start, length = 0, file_size
        status_code = status.HTTP_200_OK
    else:
        start, length = byte_range.start, byte_range.length
        status_code = status.HTTP_206_PARTIAL_CONTENT
        headers["Content-Range"] = byte_range.content_range
    headers["Content-Length"] = str(length)

    VIDEO_STREAM_RESPONSES_TOTAL.labels(status_code=str(status_code)).inc()
    VIDEO_STREAM_BYTES_TOTAL.inc(length)

    return StreamingResponse(
        iter_file_span(path, start, length, chunk_size),
        status_code=status_code,
        media_type=detect_media_type(path),
        headers=headers,
    )
