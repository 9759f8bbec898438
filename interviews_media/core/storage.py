"""Managed local storage root for recordings and their renditions.

Clients never see filesystem paths. Files are addressed by an opaque token,
the base64 encoding of the storage-relative path, and every decoded path is
resolved against the storage root before it is touched.
"""

import base64
import binascii
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from interviews_media.core.config import settings

_TOKEN_RE = re.compile(r"^[A-Za-z0-9+/_-]+={0,2}$")


class StorageError(Exception):
    """Base exception for storage errors."""


class InvalidPathToken(StorageError):
    """Raised when a path token is not valid base64 of a UTF-8 path."""


class PathOutsideStorage(StorageError):
    """Raised when a path would resolve outside the storage root."""


def encode_path_token(relative_path: str) -> str:
    """Encode a storage-relative path as a URL-safe opaque token."""
    return base64.urlsafe_b64encode(relative_path.encode("utf-8")).decode("ascii")


def decode_path_token(token: str) -> str:
    """Decode a path token back into a storage-relative path.

    Accepts both the standard and the URL-safe base64 alphabets, with or
    without padding.

    Raises:
        InvalidPathToken: If the token is not decodable to a UTF-8 path
    """
    token = token.strip()
    if not token or not _TOKEN_RE.match(token):
        raise InvalidPathToken("Malformed path token")

    normalized = token.rstrip("=").replace("+", "-").replace("/", "_")
    normalized += "=" * (-len(normalized) % 4)

    try:
        raw = base64.urlsafe_b64decode(normalized)
        path = raw.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise InvalidPathToken("Malformed path token") from e

    if not path or "\x00" in path:
        raise InvalidPathToken("Malformed path token")
    return path


class LocalStorage:
    """Local filesystem storage rooted at a single managed directory."""

    def __init__(self, root: str | Path, stream_prefix: Optional[str] = None):
        self.root = Path(root).resolve()
        self.stream_prefix = stream_prefix or f"{settings.API_PREFIX}/videos/stream"

    def ensure_layout(self) -> None:
        """Create the storage root and its standard sub-directories."""
        for sub in (
            "",
            settings.RECORDINGS_PATH,
            settings.PROCESSED_PATH,
            settings.THUMBNAILS_PATH,
            settings.TEMP_PATH,
        ):
            (self.root / sub).mkdir(parents=True, exist_ok=True)

    def resolve(self, relative_path: str) -> Path:
        """Map a storage-relative path onto an absolute path under the root.

        Raises:
            PathOutsideStorage: If the path is absolute or escapes the root
        """
        candidate = Path(relative_path)
        if candidate.is_absolute():
            raise PathOutsideStorage(f"Absolute paths are not accepted: {relative_path}")

        try:
            full_path = (self.root / candidate).resolve()
        except (OSError, ValueError) as e:
            raise PathOutsideStorage(f"Unresolvable path: {relative_path}") from e

        if full_path != self.root and not full_path.is_relative_to(self.root):
            raise PathOutsideStorage(f"Path escapes storage root: {relative_path}")
        return full_path

    def relative_to_root(self, path: str | Path) -> str:
        """Normalize an absolute or root-relative path to a root-relative key.

        Processing jobs record absolute output paths; the stream URL needs the
        path relative to the root.
        """
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                return candidate.resolve().relative_to(self.root).as_posix()
            except ValueError as e:
                raise PathOutsideStorage(f"Path escapes storage root: {path}") from e
        return self.resolve(str(candidate)).relative_to(self.root).as_posix()

    def exists(self, relative_path: str) -> bool:
        """Check whether a regular file exists at the given path."""
        try:
            return self.resolve(relative_path).is_file()
        except StorageError:
            return False

    def file_size(self, relative_path: str) -> int:
        return self.resolve(relative_path).stat().st_size

    def delete(self, relative_path: str) -> bool:
        """Delete a file; returns False when nothing was there."""
        full_path = self.resolve(relative_path)
        if full_path.is_file():
            full_path.unlink()
            return True
        return False

    def generate_storage_path(
        self,
        recording_id: int | str,
        extension: str,
        now: Optional[datetime] = None,
    ) -> str:
        """Generate ``recordings/YYYY/MM/DD/<recording_id>.<ext>``."""
        now = now or datetime.now(timezone.utc)
        date_prefix = now.strftime("%Y/%m/%d")
        return f"{settings.RECORDINGS_PATH}/{date_prefix}/{recording_id}.{extension.lstrip('.')}"

    def store_file(self, source: Path, relative_path: str) -> Path:
        """Move a file into storage and return its new absolute path."""
        destination = self.resolve(relative_path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))
        return destination

    def disk_free(self) -> int:
        return shutil.disk_usage(self.root).free

    def stream_url(self, relative_path: str) -> str:
        """Build the playback URL for a stored file."""
        return f"{self.stream_prefix}/{encode_path_token(relative_path)}"


_storage: Optional[LocalStorage] = None


def get_storage() -> LocalStorage:
    """Get the process-wide storage instance (FastAPI dependency)."""
    global _storage
    if _storage is None:
        _storage = LocalStorage(settings.STORAGE_ROOT)
    return _storage
