from fastapi import APIRouter, Depends, HTTPException, Query, status as http_status

from directory.schemas.areas import AreaOut
from directory.services.directory import DirectoryService
from directory.services.errors import DirectoryValidationError, StorageError
from directory.services.repository import get_repository

router = APIRouter()


@router.get("", response_model=list[AreaOut])
async def list_areas(
    island: str | None = Query(default=None),
    repository=Depends(get_repository),
) -> list[AreaOut]:
    if not island:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={"code": "ISLAND_REQUIRED", "message": "Island parameter required"},
        )
    try:
        areas = await DirectoryService(repository).list_areas(island)
    except DirectoryValidationError as exc:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    except StorageError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return [AreaOut(id=area.id, name=area.name) for area in areas]
