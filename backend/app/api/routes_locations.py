from typing import List, Optional

from fastapi import APIRouter, Depends, status

from app.api import get_current_user_id, get_repository
from app.models.domain import LocationType
from app.models.schemas import LocationCreate, LocationSchema
from app.services.catalog_service import CatalogService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_catalog_service(
    repository: InMemoryRepository = Depends(get_repository),
) -> CatalogService:
    return CatalogService(repository=repository)


@router.get("/", response_model=List[LocationSchema])
def list_locations(
    type: Optional[LocationType] = None,
    parent_id: Optional[str] = None,
    search: Optional[str] = None,
    service: CatalogService = Depends(get_catalog_service),
) -> List[LocationSchema]:
    return service.list_locations(type=type, parent_id=parent_id, search=search)


@router.post("/", response_model=LocationSchema, status_code=status.HTTP_201_CREATED)
def create_location(
    payload: LocationCreate,
    user_id: str = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
) -> LocationSchema:
    return service.create_location(user_id, payload)


@router.get("/{location_id}", response_model=LocationSchema)
def get_location(
    location_id: str, service: CatalogService = Depends(get_catalog_service)
) -> LocationSchema:
    return service.get_location(location_id)


@router.get("/{location_id}/children", response_model=List[LocationSchema])
def get_children(
    location_id: str, service: CatalogService = Depends(get_catalog_service)
) -> List[LocationSchema]:
    return service.get_children(location_id)


@router.get("/{location_id}/descendants", response_model=List[LocationSchema])
def get_descendants(
    location_id: str, service: CatalogService = Depends(get_catalog_service)
) -> List[LocationSchema]:
    return service.get_descendants(location_id)
