"""Storage management service.

Builds analytics and health reports over the stored video files and exposes
the maintenance actions of the video storage service. Reports cover the
caller's recordings; system-wide reports and maintenance need the admin role.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from interviews_media.core.errors import Forbidden
from interviews_media.core.storage import LocalStorage
from interviews_media.core.tracing import add_span_attributes
from interviews_media.modules.auth.schemas import Principal, Role
from interviews_media.modules.auth.service import AuthorizationService
from interviews_media.modules.storage.schemas import (
    AnalyticsOverview,
    FileDistribution,
    FormatBreakdown,
    MonthlyGrowth,
    QuotaUsage,
    SizeBucket,
    StatisticsUpdateResult,
    StorageAnalytics,
    StorageHealth,
)
from interviews_media.modules.video.schemas import CleanupResult, QuotaEnforcementResult
from interviews_media.modules.video.service import VideoStorageService, format_file_size

logger = logging.getLogger(__name__)

MIB = 1024 * 1024

# (label, exclusive upper bound in bytes), ascending
SIZE_BUCKETS = [
    ("Under 10MB", 10 * MIB),
    ("10MB - 100MB", 100 * MIB),
    ("100MB - 1GB", 1024 * MIB),
]
SIZE_OVERFLOW_LABEL = "Over 1GB"

GROWTH_MONTHS = 12

# Health scoring
LARGE_FILE_BYTES = 500 * MIB
LARGE_FILES_LIMIT = 5
OLD_FILE_DAYS = 90
OLD_FILES_LIMIT = 10


def health_status(score: int) -> str:
    if score >= 80:
        return "healthy"
    if score >= 60:
        return "warning"
    return "critical"


def _month_key(value: datetime) -> str:
    return value.strftime("%Y-%m")


def _recent_months(now: datetime, count: int) -> list[tuple[int, int]]:
    """The ``count`` (year, month) pairs ending with the month of ``now``, newest first."""
    year, month = now.year, now.month
    months = []
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return months


class StorageManagementService:
    """Service for storage analytics, health and maintenance."""

    def __init__(
        self,
        session: AsyncSession,
        storage: LocalStorage,
        authz: Optional[AuthorizationService] = None,
    ):
        self.session = session
        self.authz = authz or AuthorizationService(session)
        self.videos = VideoStorageService(session, storage, authz=self.authz)
        self.file_repo = self.videos.file_repo

    def _require_admin(self, principal: Principal) -> None:
        if not self.authz.has_role(principal, Role.ADMIN):
            logger.info("Admin storage action denied", extra={"user_id": principal.id})
            raise Forbidden("Admin access required")

    # ============================================
    # Reports
    # ============================================
    async def get_analytics(
        self, principal: Principal, all_users: bool = False
    ) -> StorageAnalytics:
        """Storage analytics of the caller, or of every user for admins.

        Raises:
            Forbidden: all_users requested without the admin role
        """
        if all_users:
            self._require_admin(principal)

        owner_id = None if all_users else principal.id
        now = datetime.now(timezone.utc)
        add_span_attributes({"storage.analytics.all_users": all_users})

        totals = await self.file_repo.stats_for_owner(owner_id)
        formats = await self.file_repo.format_distribution(owner_id)
        buckets = await self.file_repo.size_distribution(
            owner_id, SIZE_BUCKETS, SIZE_OVERFLOW_LABEL
        )
        growth = await self._monthly_growth(owner_id, now)

        return StorageAnalytics(
            overall=AnalyticsOverview(
                total_files=totals["total_files"],
                total_size=totals["total_size"],
                total_size_formatted=format_file_size(totals["total_size"]),
                avg_file_size=totals["avg_file_size"],
                avg_file_size_formatted=format_file_size(totals["avg_file_size"]),
                oldest_file=totals["oldest_file"],
                newest_file=totals["newest_file"],
                unique_formats=totals["unique_formats"],
            ),
            format_distribution=[
                FormatBreakdown(
                    format=fmt,
                    count=count,
                    total_size=size,
                    total_size_formatted=format_file_size(size),
                    avg_size=size // count if count else 0,
                    avg_size_formatted=format_file_size(size // count if count else 0),
                )
                for fmt, count, size in formats
            ],
            size_distribution=[
                SizeBucket(
                    size_range=label,
                    count=count,
                    total_size=size,
                    total_size_formatted=format_file_size(size),
                )
                for label, count, size in buckets
            ],
            monthly_growth=growth,
            generated_at=now,
        )

    async def _monthly_growth(
        self, owner_id: Optional[int], now: datetime
    ) -> list[MonthlyGrowth]:
        """Files added per calendar month over the last twelve months, newest first.

        Months without uploads are omitted.
        """
        months = _recent_months(now, GROWTH_MONTHS)
        since = datetime(*months[-1], 1, tzinfo=timezone.utc)

        added = {f"{year:04d}-{month:02d}": [0, 0] for year, month in months}
        for created_at, size in await self.file_repo.list_sizes_since(owner_id, since):
            key = _month_key(created_at)
            if key in added:
                added[key][0] += 1
                added[key][1] += size

        return [
            MonthlyGrowth(
                month=month,
                files_added=count,
                size_added=size,
                size_added_formatted=format_file_size(size),
            )
            for month, (count, size) in added.items()
            if count
        ]

    async def get_health(self, principal: Principal) -> StorageHealth:
        """Score the caller's storage out of 100 and list what to fix."""
        score = 100
        issues: list[str] = []
        recommendations: list[str] = []
        cleanup_needed = False

        totals = await self.file_repo.stats_for_owner(principal.id)
        usage_percent = round(totals["total_size"] / self.videos.quota_bytes * 100, 2)
        quota_status = "healthy"
        if usage_percent > 90:
            score -= 30
            quota_status = "critical"
            issues.append("Storage quota critically high (>90%)")
            recommendations.append("Delete old recordings or increase quota")
            cleanup_needed = True
        elif usage_percent > 75:
            score -= 15
            quota_status = "warning"
            issues.append("Storage quota high (>75%)")
            recommendations.append("Consider cleaning up old files")

        large_files = await self.file_repo.count_for_owner(
            principal.id, larger_than=LARGE_FILE_BYTES
        )
        distribution_status = "healthy"
        if large_files > LARGE_FILES_LIMIT:
            score -= 10
            distribution_status = "warning"
            issues.append(f"Many large files detected ({large_files} files > 500MB)")
            recommendations.append("Consider compressing large files to save space")

        old_cutoff = datetime.now(timezone.utc) - timedelta(days=OLD_FILE_DAYS)
        old_files = await self.file_repo.count_for_owner(
            principal.id, created_before=old_cutoff
        )
        if old_files > OLD_FILES_LIMIT:
            score -= 5
            issues.append(f"Many old files detected ({old_files} files > {OLD_FILE_DAYS} days old)")
            recommendations.append("Archive or delete old recordings you no longer need")
            cleanup_needed = True

        return StorageHealth(
            overall_score=score,
            status=health_status(score),
            issues=issues,
            recommendations=recommendations,
            quota_usage=QuotaUsage(percentage=usage_percent, status=quota_status),
            file_distribution=FileDistribution(
                status=distribution_status, large_files_count=large_files
            ),
            cleanup_needed=cleanup_needed,
        )

    # ============================================
    # Maintenance
    # ============================================
    async def enforce_quota(self, principal: Principal) -> QuotaEnforcementResult:
        """Enforce the storage quota on the caller's own files."""
        return await self.videos.enforce_storage_quota(principal.id)

    async def cleanup(
        self, principal: Principal, days_old: Optional[int] = None
    ) -> CleanupResult:
        """Hard-delete old files of every user.

        Raises:
            Forbidden: caller is not an admin
        """
        self._require_admin(principal)
        result = await self.videos.cleanup_old_files(days_old)
        logger.info(
            "Storage cleanup requested",
            extra={"user_id": principal.id, "deleted_files": result.deleted_files},
        )
        return result

    async def update_statistics(self, principal: Principal) -> StatisticsUpdateResult:
        """Write today's storage snapshot.

        Raises:
            Forbidden: caller is not an admin
        """
        self._require_admin(principal)
        result = await self.videos.update_storage_statistics()
        return StatisticsUpdateResult(**result)
