"""Repository tests against in-memory SQLite."""

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from interviews_media.modules.video.models import ProcessingStatus, ProcessingType
from interviews_media.modules.video.repository import (
    ProcessingQueueRepository,
    RecordingRepository,
    StorageStatisticsRepository,
    VideoFileRepository,
)


async def add_file(session, recording_id: int, **overrides):
    fields = {
        "recording_id": recording_id,
        "storage_path": f"recordings/2025/01/01/{recording_id}.mp4",
        "file_size": 1000,
        "format": "mp4",
        "mime_type": "video/mp4",
    }
    fields.update(overrides)
    return await VideoFileRepository(session).create(**fields)


@pytest.fixture
async def recordings(session):
    repo = RecordingRepository(session)
    await repo.create(host_user_id=7, title="Founder interview", recording_id=42)
    await repo.create(host_user_id=7, title="Second take", recording_id=43)
    await repo.create(host_user_id=9, title="Someone else", recording_id=50)
    return repo


class TestRecordingRepository:
    async def test_get_owner_id(self, session, recordings) -> None:
        assert await recordings.get_owner_id(42) == 7
        assert await recordings.get_owner_id(50) == 9
        assert await recordings.get_owner_id(999) is None


class TestVideoFileRepository:
    async def test_active_file_is_newest_non_deleted(self, session, recordings) -> None:
        repo = VideoFileRepository(session)
        older = await add_file(session, 42, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
        newer = await add_file(
            session,
            42,
            storage_path="recordings/2025/01/02/42.webm",
            created_at=datetime(2025, 1, 2, tzinfo=timezone.utc),
        )

        active = await repo.get_active_for_recording(42)
        assert active.id == newer.id

        await add_file(
            session,
            42,
            storage_path="recordings/2025/01/03/42.mp4",
            created_at=datetime(2025, 1, 3, tzinfo=timezone.utc),
            deleted_at=datetime(2025, 1, 4, tzinfo=timezone.utc),
        )
        active = await repo.get_active_for_recording(42)
        assert active.id == newer.id

        await repo.soft_delete(42, datetime.now(timezone.utc))
        assert await repo.get_active_for_recording(42) is None
        assert {f.id for f in await repo.list_for_recording(42)} >= {older.id, newer.id}

    async def test_no_active_file(self, session, recordings) -> None:
        repo = VideoFileRepository(session)
        assert await repo.get_active_for_recording(42) is None

        await add_file(session, 42)
        assert await repo.soft_delete(42, datetime.now(timezone.utc)) == 1
        assert await repo.get_active_for_recording(42) is None

    async def test_list_for_owner_filters_and_paginates(self, session, recordings) -> None:
        await add_file(session, 42, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
        await add_file(
            session,
            43,
            format="webm",
            storage_path="recordings/2025/02/01/43.webm",
            created_at=datetime(2025, 2, 1, tzinfo=timezone.utc),
        )
        await add_file(session, 50)

        repo = VideoFileRepository(session)
        rows, total = await repo.list_for_owner(7, limit=1, offset=0)
        assert total == 2
        assert len(rows) == 1
        video_file, recording = rows[0]
        assert video_file.recording_id == 43
        assert recording.title == "Second take"

        rows, total = await repo.list_for_owner(7, format="mp4")
        assert total == 1
        assert rows[0][0].recording_id == 42

        rows, total = await repo.list_for_owner(
            7, date_from=datetime(2025, 1, 15, tzinfo=timezone.utc)
        )
        assert [row[0].recording_id for row in rows] == [43]

        rows, total = await repo.list_for_owner(9)
        assert total == 1

    async def test_stats_and_distribution(self, session, recordings) -> None:
        await add_file(session, 42, file_size=1000)
        await add_file(session, 43, file_size=3000, format="webm")
        await add_file(session, 50, file_size=5000)

        repo = VideoFileRepository(session)
        own = await repo.stats_for_owner(7)
        assert own["total_files"] == 2
        assert own["total_size"] == 4000
        assert own["avg_file_size"] == 2000
        assert own["oldest_file"] is not None

        everyone = await repo.stats_for_owner(None)
        assert everyone["total_files"] == 3
        assert everyone["total_size"] == 9000

        distribution = await repo.format_distribution(None)
        assert ("mp4", 2, 6000) in distribution
        assert ("webm", 1, 3000) in distribution

    async def test_stats_for_user_without_files(self, session, recordings) -> None:
        stats = await VideoFileRepository(session).stats_for_owner(12345)
        assert stats["total_files"] == 0
        assert stats["total_size"] == 0
        assert stats["oldest_file"] is None

    async def test_list_older_than_skips_deleted(self, session, recordings) -> None:
        repo = VideoFileRepository(session)
        old = datetime.now(timezone.utc) - timedelta(days=200)
        kept = await add_file(session, 42, created_at=old)
        await add_file(session, 43, created_at=old, deleted_at=old)
        await add_file(session, 50)

        cutoff = datetime.now(timezone.utc) - timedelta(days=90)
        files = await repo.list_older_than(cutoff)
        assert [f.id for f in files] == [kept.id]

    async def test_hard_delete(self, session, recordings) -> None:
        repo = VideoFileRepository(session)
        video_file = await add_file(session, 42)
        await repo.hard_delete(video_file)
        assert await repo.list_for_recording(42) == []


class TestProcessingQueueRepository:
    async def test_completed_compressions_newest_first(self, session, recordings) -> None:
        repo = ProcessingQueueRepository(session)
        first = await repo.create(
            42,
            ProcessingType.COMPRESSION.value,
            status=ProcessingStatus.COMPLETED.value,
            processing_params=json.dumps({"quality": "480p"}),
            output_path="processed/42_480p.mp4",
        )
        second = await repo.create(
            42,
            ProcessingType.COMPRESSION.value,
            status=ProcessingStatus.COMPLETED.value,
            processing_params=json.dumps({"quality": "720p"}),
            output_path="processed/42_720p.mp4",
        )
        await repo.create(42, ProcessingType.COMPRESSION.value, status=ProcessingStatus.FAILED.value)
        await repo.create(42, ProcessingType.THUMBNAIL.value, status=ProcessingStatus.COMPLETED.value)
        await repo.create(43, ProcessingType.COMPRESSION.value, status=ProcessingStatus.COMPLETED.value)

        entries = await repo.list_completed_compressions(42)

        assert [entry.id for entry in entries] == [second.id, first.id]

    async def test_count_by_status(self, session, recordings) -> None:
        repo = ProcessingQueueRepository(session)
        await repo.create(42, ProcessingType.COMPRESSION.value)
        await repo.create(43, ProcessingType.METADATA.value)
        await repo.create(42, ProcessingType.THUMBNAIL.value, status=ProcessingStatus.FAILED.value)

        assert await repo.count_by_status(ProcessingStatus.PENDING.value) == 2
        assert await repo.count_by_status(ProcessingStatus.FAILED.value) == 1
        assert await repo.count_by_status(ProcessingStatus.COMPLETED.value) == 0


class TestStorageStatisticsRepository:
    async def test_upsert_for_date(self, session) -> None:
        repo = StorageStatisticsRepository(session)
        today = date(2025, 5, 1)

        await repo.upsert_for_date(today, total_files=3, total_size_bytes=300)
        snapshot = await repo.upsert_for_date(today, total_files=4, total_size_bytes=400)

        assert snapshot.total_files == 4
        assert snapshot.total_size_bytes == 400
        stored = await repo.get_for_date(today)
        assert stored.total_files == 4
