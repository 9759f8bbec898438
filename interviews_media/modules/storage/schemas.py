"""Pydantic schemas for the storage management module."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================
# Requests
# ============================================
class CleanupRequest(BaseModel):
    """Request schema for removing old files; days_old defaults to the configured age."""

    model_config = ConfigDict(extra="forbid")

    days_old: Optional[int] = Field(None, ge=1)


# ============================================
# Responses
# ============================================
class AnalyticsOverview(BaseModel):
    total_files: int
    total_size: int
    total_size_formatted: str
    avg_file_size: int
    avg_file_size_formatted: str
    oldest_file: Optional[datetime] = None
    newest_file: Optional[datetime] = None
    unique_formats: int


class FormatBreakdown(BaseModel):
    format: str
    count: int
    total_size: int
    total_size_formatted: str
    avg_size: int
    avg_size_formatted: str


class SizeBucket(BaseModel):
    size_range: str
    count: int
    total_size: int
    total_size_formatted: str


class MonthlyGrowth(BaseModel):
    month: str  # YYYY-MM
    files_added: int
    size_added: int
    size_added_formatted: str


class StorageAnalytics(BaseModel):
    overall: AnalyticsOverview
    format_distribution: list[FormatBreakdown]
    size_distribution: list[SizeBucket]
    monthly_growth: list[MonthlyGrowth]
    generated_at: datetime


class QuotaUsage(BaseModel):
    percentage: float
    status: str


class FileDistribution(BaseModel):
    status: str
    large_files_count: int


class StorageHealth(BaseModel):
    """Scored summary of a user's storage; status is healthy, warning or critical."""

    overall_score: int
    status: str
    issues: list[str]
    recommendations: list[str]
    quota_usage: QuotaUsage
    file_distribution: FileDistribution
    cleanup_needed: bool


class StatisticsUpdateResult(BaseModel):
    date: str
    statistics_updated: bool
