"""End-to-end tests for the storage management API."""

from datetime import datetime, timedelta, timezone

import pytest

from interviews_media.modules.auth.jwt import create_access_token
from interviews_media.modules.video.models import Recording, VideoFile

MIB = 1024 * 1024


def auth(user_id: int, role: str = "user") -> dict[str, str]:
    token, _ = create_access_token(user_id, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def library(api):
    """User 7 hosts three recordings of 5 MB, 50 MB and 2 GB; user 9 hosts one old file."""
    old = datetime.now(timezone.utc) - timedelta(days=200)
    api.write("recordings/2025/01/01/50.mp4", b"old")
    api.seed(
        Recording(id=42, host_user_id=7),
        Recording(id=43, host_user_id=7),
        Recording(id=44, host_user_id=7),
        Recording(id=50, host_user_id=9),
        VideoFile(recording_id=42, storage_path="recordings/2025/06/01/42.mp4",
                  file_size=5 * MIB, format="mp4", mime_type="video/mp4"),
        VideoFile(recording_id=43, storage_path="recordings/2025/06/01/43.webm",
                  file_size=50 * MIB, format="webm", mime_type="video/webm"),
        VideoFile(recording_id=44, storage_path="recordings/2025/06/01/44.mp4",
                  file_size=2048 * MIB, format="mp4", mime_type="video/mp4"),
        VideoFile(recording_id=50, storage_path="recordings/2025/01/01/50.mp4",
                  file_size=3, format="mp4", mime_type="video/mp4", created_at=old),
    )
    return api


class TestAnalytics:
    def test_own_analytics(self, library) -> None:
        response = library.client.get("/api/storage/analytics", headers=auth(7))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["overall"]["total_files"] == 3
        assert data["overall"]["unique_formats"] == 2
        assert [b["size_range"] for b in data["size_distribution"]] == [
            "Under 10MB",
            "10MB - 100MB",
            "Over 1GB",
        ]
        assert data["size_distribution"][2]["total_size_formatted"] == "2 GB"
        assert data["format_distribution"][0]["format"] == "mp4"
        assert data["monthly_growth"][0]["files_added"] == 3
        assert data["monthly_growth"][0]["month"] == datetime.now(timezone.utc).strftime("%Y-%m")

    def test_requires_token(self, library) -> None:
        response = library.client.get("/api/storage/analytics")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_system_analytics_admin_only(self, library) -> None:
        response = library.client.get("/api/storage/system-analytics", headers=auth(7))
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Admin access required"}

        response = library.client.get("/api/storage/system-analytics", headers=auth(1, "admin"))
        assert response.status_code == 200
        assert response.json()["data"]["overall"]["total_files"] == 4


class TestHealth:
    def test_health_report(self, library) -> None:
        response = library.client.get("/api/storage/health", headers=auth(7))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overall_score"] == 100
        assert data["status"] == "healthy"
        assert data["quota_usage"]["status"] == "healthy"
        assert data["file_distribution"]["large_files_count"] == 1
        assert data["cleanup_needed"] is False


class TestMaintenance:
    def test_enforce_quota(self, library) -> None:
        response = library.client.post("/api/storage/enforce-quota", headers=auth(7))

        assert response.status_code == 200
        assert response.json()["data"]["quota_exceeded"] is False

    def test_cleanup_forbidden_for_users(self, library) -> None:
        response = library.client.post(
            "/api/storage/cleanup", headers=auth(9), json={"days_old": 30}
        )
        assert response.status_code == 403
        assert library.storage.exists("recordings/2025/01/01/50.mp4")

    def test_cleanup_by_admin(self, library) -> None:
        response = library.client.post(
            "/api/storage/cleanup", headers=auth(1, "admin"), json={"days_old": 30}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["deleted_files"] == 1
        assert data["space_freed"] == 3
        assert not library.storage.exists("recordings/2025/01/01/50.mp4")

        stats = library.client.get("/api/storage/system-analytics", headers=auth(1, "admin"))
        assert stats.json()["data"]["overall"]["total_files"] == 3

    def test_cleanup_without_body_uses_default_age(self, library) -> None:
        response = library.client.post("/api/storage/cleanup", headers=auth(1, "admin"))

        assert response.status_code == 200
        assert response.json()["data"]["deleted_files"] == 1

    @pytest.mark.parametrize("body", [{"days_old": 0}, {"days_old": 30, "force": True}])
    def test_cleanup_rejects_invalid_body(self, library, body) -> None:
        response = library.client.post(
            "/api/storage/cleanup", headers=auth(1, "admin"), json=body
        )
        assert response.status_code == 400

    def test_update_statistics(self, library) -> None:
        assert library.client.post(
            "/api/storage/update-statistics", headers=auth(7)
        ).status_code == 403

        response = library.client.post(
            "/api/storage/update-statistics", headers=auth(1, "admin")
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["statistics_updated"] is True
        assert data["date"] == datetime.now(timezone.utc).date().isoformat()
