import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from directory.core.config import Settings, get_settings
from directory.core.security import AdminActor, get_admin_actor
from directory.schemas.admin import ArchiveToggleOut, LifecycleRecomputeOut, VerifyProviderRequest
from directory.schemas.providers import MessageOut, ProviderOut
from directory.services.directory import DirectoryService
from directory.services.errors import DirectoryValidationError, NotFoundError, StorageError
from directory.services.filters import AdminProviderFilters
from directory.services.models import LifecycleStatus
from directory.services.repository import get_repository

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/providers", response_model=list[ProviderOut])
async def list_admin_providers(
    actor: AdminActor = Depends(get_admin_actor),
    repository=Depends(get_repository),
    island: str | None = Query(default=None, min_length=1),
    area_id: int | None = Query(default=None, ge=1, alias="areaId"),
    category_id: int | None = Query(default=None, ge=1, alias="categoryId"),
    provider_status: str | None = Query(default=None, min_length=1, alias="status"),
    verified: bool | None = Query(default=None),
    gov_approved: bool | None = Query(default=None, alias="govApproved"),
    archived: bool | None = Query(default=None),
) -> list[ProviderOut]:
    try:
        filters = AdminProviderFilters(
            island=island,
            area_id=area_id,
            category_id=category_id,
            status=provider_status,
            verified=verified,
            gov_approved=gov_approved,
            archived=archived,
        )
        rows = await DirectoryService(repository).list_admin_providers(filters)
    except DirectoryValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return [ProviderOut(**row.to_dict()) for row in rows]


@router.put("/providers/{provider_id}/verify", response_model=MessageOut)
async def verify_provider(
    provider_id: int,
    payload: VerifyProviderRequest,
    actor: AdminActor = Depends(get_admin_actor),
    repository=Depends(get_repository),
) -> MessageOut:
    try:
        await repository.set_verified(provider_id=provider_id, verified=payload.verified, assigned_by=actor.actor_id)
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    logger.info(
        "admin action=%s provider_id=%s actor=%s",
        "VERIFY" if payload.verified else "UNVERIFY",
        provider_id,
        actor.actor_id,
    )
    return MessageOut(message="Provider verification updated")


@router.put("/providers/{provider_id}/archive", response_model=ArchiveToggleOut)
async def toggle_provider_archive(
    provider_id: int,
    actor: AdminActor = Depends(get_admin_actor),
    repository=Depends(get_repository),
) -> ArchiveToggleOut:
    try:
        new_status = await repository.toggle_archived(provider_id=provider_id)
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    archived = new_status == LifecycleStatus.ARCHIVED.value
    logger.info(
        "admin action=%s provider_id=%s actor=%s",
        "ARCHIVE" if archived else "UNARCHIVE",
        provider_id,
        actor.actor_id,
    )
    return ArchiveToggleOut(
        message=f"Provider {'archived' if archived else 'unarchived'}",
        lifecycle_status=new_status,
    )


@router.post("/jobs/recompute-provider-lifecycle", response_model=LifecycleRecomputeOut)
async def recompute_provider_lifecycle(
    actor: AdminActor = Depends(get_admin_actor),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> LifecycleRecomputeOut:
    try:
        updated = await repository.recompute_lifecycle(
            active_window_days=settings.lifecycle_active_window_days,
            inactive_window_days=settings.lifecycle_inactive_window_days,
        )
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    logger.info("admin action=RECOMPUTE_LIFECYCLE updated=%s actor=%s", updated, actor.actor_id)
    return LifecycleRecomputeOut(message=f"Lifecycle recomputed for {updated} providers", updated=updated)
