"""Storage management API router."""

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from interviews_media.core.database import get_db
from interviews_media.core.storage import LocalStorage, get_storage
from interviews_media.modules.auth.jwt import get_current_principal
from interviews_media.modules.auth.schemas import Principal
from interviews_media.modules.storage.schemas import (
    CleanupRequest,
    StatisticsUpdateResult,
    StorageAnalytics,
    StorageHealth,
)
from interviews_media.modules.storage.service import StorageManagementService
from interviews_media.modules.video.schemas import (
    CleanupResult,
    QuotaEnforcementResult,
    SuccessResponse,
)

router = APIRouter(prefix="/storage", tags=["storage"])


def get_storage_management_service(
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
) -> StorageManagementService:
    return StorageManagementService(db, storage)


@router.get("/analytics", response_model=SuccessResponse[StorageAnalytics])
async def get_storage_analytics(
    principal: Principal = Depends(get_current_principal),
    service: StorageManagementService = Depends(get_storage_management_service),
):
    """Get analytics of the caller's stored files."""
    analytics = await service.get_analytics(principal)
    return SuccessResponse(data=analytics)


@router.get("/system-analytics", response_model=SuccessResponse[StorageAnalytics])
async def get_system_storage_analytics(
    principal: Principal = Depends(get_current_principal),
    service: StorageManagementService = Depends(get_storage_management_service),
):
    """Get analytics of every stored file (admin only)."""
    analytics = await service.get_analytics(principal, all_users=True)
    return SuccessResponse(data=analytics)


@router.post("/enforce-quota", response_model=SuccessResponse[QuotaEnforcementResult])
async def enforce_storage_quota(
    principal: Principal = Depends(get_current_principal),
    service: StorageManagementService = Depends(get_storage_management_service),
):
    """Soft-delete the caller's oldest files while over quota."""
    result = await service.enforce_quota(principal)
    return SuccessResponse(data=result)


@router.post("/cleanup", response_model=SuccessResponse[CleanupResult])
async def cleanup_old_files(
    data: Optional[CleanupRequest] = Body(None),
    principal: Principal = Depends(get_current_principal),
    service: StorageManagementService = Depends(get_storage_management_service),
):
    """Hard-delete files older than ``days_old`` days (admin only)."""
    days_old = data.days_old if data else None
    result = await service.cleanup(principal, days_old)
    return SuccessResponse(data=result)


@router.post("/update-statistics", response_model=SuccessResponse[StatisticsUpdateResult])
async def update_storage_statistics(
    principal: Principal = Depends(get_current_principal),
    service: StorageManagementService = Depends(get_storage_management_service),
):
    """Write today's storage snapshot (admin only)."""
    result = await service.update_statistics(principal)
    return SuccessResponse(data=result)


@router.get("/health", response_model=SuccessResponse[StorageHealth])
async def get_storage_health(
    principal: Principal = Depends(get_current_principal),
    service: StorageManagementService = Depends(get_storage_management_service),
):
    """Score the caller's storage and list recommended actions."""
    health = await service.get_health(principal)
    return SuccessResponse(data=health)
