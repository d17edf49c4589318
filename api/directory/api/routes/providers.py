from fastapi import APIRouter, Depends, HTTPException, Query, status as http_status

from directory.schemas.providers import (
    MessageOut,
    ProviderDetailOut,
    ProviderListData,
    ProviderListResponse,
    ProviderOut,
    ProviderProfileUpdateRequest,
    ProviderStatusUpdateRequest,
    SuggestionOut,
)
from directory.services.directory import DirectoryService, suggest_relaxations
from directory.services.errors import DirectoryValidationError, NotFoundError, StorageError
from directory.services.filters import ProviderFilters
from directory.services.models import AvailabilityStatus, coerce_enum
from directory.services.profiles import ProfileUpdate
from directory.services.repository import get_repository

router = APIRouter()


@router.get("", response_model=ProviderListResponse)
async def list_providers(
    island: str | None = Query(default=None, min_length=1),
    area_id: int | None = Query(default=None, ge=1, alias="areaId"),
    category_id: int | None = Query(default=None, ge=1, alias="categoryId"),
    provider_status: str | None = Query(default=None, min_length=1, alias="status"),
    repository=Depends(get_repository),
) -> ProviderListResponse:
    try:
        filters = ProviderFilters(
            island=island,
            area_id=area_id,
            category_id=category_id,
            status=provider_status,
        )
        rows = await DirectoryService(repository).list_providers(filters)
    except DirectoryValidationError as exc:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    except StorageError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    suggestions = None
    if not rows:
        suggestions = [
            SuggestionOut(id=item.id, label=item.label, description=item.description, patch=item.patch)
            for item in suggest_relaxations(filters)
        ] or None
    return ProviderListResponse(
        data=ProviderListData(
            providers=[ProviderOut(**row.to_dict()) for row in rows],
            suggestions=suggestions,
        )
    )


@router.get("/{provider_id}", response_model=ProviderDetailOut)
async def get_provider(provider_id: int, repository=Depends(get_repository)) -> ProviderDetailOut:
    try:
        row = await DirectoryService(repository).get_provider(provider_id)
    except DirectoryValidationError as exc:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    except StorageError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ProviderDetailOut(**row.to_dict())


@router.put("/{provider_id}/status", response_model=MessageOut)
async def update_provider_status(
    provider_id: int,
    payload: ProviderStatusUpdateRequest,
    repository=Depends(get_repository),
) -> MessageOut:
    try:
        new_status = coerce_enum(AvailabilityStatus, payload.status)
        await repository.update_status(provider_id=provider_id, status=new_status.value)
    except DirectoryValidationError as exc:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    except StorageError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return MessageOut(message="Status updated")


@router.put("/{provider_id}", response_model=MessageOut)
async def update_provider_profile(
    provider_id: int,
    payload: ProviderProfileUpdateRequest,
    repository=Depends(get_repository),
) -> MessageOut:
    changes = payload.model_dump(exclude_unset=True)
    area_ids = changes.pop("area_ids", [])
    category_ids = changes.pop("category_ids", None)
    try:
        update = ProfileUpdate(
            area_ids=tuple(area_ids),
            category_ids=tuple(category_ids) if category_ids is not None else None,
            fields=changes,
        )
        await repository.update_profile(provider_id=provider_id, update=update)
    except DirectoryValidationError as exc:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    except StorageError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return MessageOut(message="Profile updated")
