"""Tests for opaque path tokens and storage root containment.

**Feature: interviews-media, Property: Storage Root Containment**
"""

import base64
from datetime import datetime, timezone

import pytest
from hypothesis import given, settings, strategies as st

from interviews_media.core.storage import (
    InvalidPathToken,
    LocalStorage,
    PathOutsideStorage,
    decode_path_token,
    encode_path_token,
)

path_segment = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",), blacklist_characters="\x00/"),
    min_size=1,
    max_size=20,
)
relative_path_strategy = st.lists(path_segment, min_size=1, max_size=5).map("/".join)


class TestPathTokens:
    @given(relative_path=relative_path_strategy)
    @settings(max_examples=200)
    def test_token_decodes_to_path(self, relative_path: str) -> None:
        """Every encoded path SHALL decode back to the same path."""
        token = encode_path_token(relative_path)
        assert "/" not in token and "+" not in token
        assert decode_path_token(token) == relative_path

    @given(relative_path=relative_path_strategy)
    @settings(max_examples=100)
    def test_standard_alphabet_and_missing_padding_accepted(self, relative_path: str) -> None:
        standard = base64.b64encode(relative_path.encode("utf-8")).decode("ascii")
        assert decode_path_token(standard) == relative_path
        assert decode_path_token(standard.rstrip("=")) == relative_path

    @pytest.mark.parametrize("token", ["", "   ", "!!!", "abc$", "a b", "====", "A"])
    def test_garbage_is_rejected(self, token: str) -> None:
        with pytest.raises(InvalidPathToken):
            decode_path_token(token)

    def test_non_utf8_is_rejected(self) -> None:
        token = base64.urlsafe_b64encode(b"\xff\xfe\xfd").decode("ascii")
        with pytest.raises(InvalidPathToken):
            decode_path_token(token)

    def test_nul_byte_is_rejected(self) -> None:
        token = base64.urlsafe_b64encode(b"recordings/\x00.mp4").decode("ascii")
        with pytest.raises(InvalidPathToken):
            decode_path_token(token)


class TestStorageContainment:
    @pytest.mark.parametrize(
        "relative_path",
        ["../secret.mp4", "recordings/../../secret.mp4", "/etc/passwd", "recordings/../../../etc/passwd"],
    )
    def test_escaping_paths_are_rejected(self, storage: LocalStorage, relative_path: str) -> None:
        with pytest.raises(PathOutsideStorage):
            storage.resolve(relative_path)

    def test_symlink_escape_is_rejected(self, storage: LocalStorage, tmp_path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "42.mp4").write_bytes(b"secret")
        (storage.root / "recordings" / "link").symlink_to(outside)

        with pytest.raises(PathOutsideStorage):
            storage.resolve("recordings/link/42.mp4")
        assert storage.exists("recordings/link/42.mp4") is False

    def test_inner_dot_segments_stay_inside(self, storage: LocalStorage) -> None:
        resolved = storage.resolve("recordings/2025/../2025/42.mp4")
        assert resolved == storage.root / "recordings" / "2025" / "42.mp4"

    @given(segments=st.lists(st.sampled_from(["..", ".", "a", "b", "recordings"]), min_size=1, max_size=8))
    @settings(max_examples=200)
    def test_resolved_paths_never_leave_root(self, segments) -> None:
        """Any accepted path SHALL resolve to the root or a descendant of it."""
        storage = LocalStorage("/srv/interviews-media-test-root")
        try:
            resolved = storage.resolve("/".join(segments))
        except PathOutsideStorage:
            return
        assert resolved == storage.root or resolved.is_relative_to(storage.root)

    def test_relative_to_root_for_absolute_path(self, storage: LocalStorage) -> None:
        absolute = storage.root / "processed" / "42_480p.mp4"
        assert storage.relative_to_root(str(absolute)) == "processed/42_480p.mp4"

    def test_relative_to_root_rejects_outside(self, storage: LocalStorage, tmp_path) -> None:
        with pytest.raises(PathOutsideStorage):
            storage.relative_to_root(str(tmp_path / "elsewhere.mp4"))

    def test_generate_storage_path(self, storage: LocalStorage) -> None:
        now = datetime(2025, 3, 7, 12, 0, tzinfo=timezone.utc)
        assert storage.generate_storage_path(42, "webm", now=now) == "recordings/2025/03/07/42.webm"
        assert storage.generate_storage_path("42", ".mp4", now=now) == "recordings/2025/03/07/42.mp4"

    def test_stream_url_uses_token(self, storage: LocalStorage) -> None:
        url = storage.stream_url("recordings/2025/03/07/42.mp4")
        assert url.startswith("/api/videos/stream/")
        assert decode_path_token(url.rsplit("/", 1)[1]) == "recordings/2025/03/07/42.mp4"

    def test_ensure_layout_creates_directories(self, storage: LocalStorage) -> None:
        for name in ("recordings", "processed", "thumbnails", "temp"):
            assert (storage.root / name).is_dir()
