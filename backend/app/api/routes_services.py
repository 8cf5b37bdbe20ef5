from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import get_current_user_id
from app.api.routes_locations import get_catalog_service
from app.models.domain import ServiceType
from app.models.schemas import (
    AvailabilitySchema,
    ServiceCreate,
    ServiceFilter,
    ServiceListResponse,
    ServiceSchema,
)
from app.services.catalog_service import CatalogService

router = APIRouter()


@router.get("/", response_model=ServiceListResponse)
def search_services(
    type: Optional[ServiceType] = None,
    location_id: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    tags: List[str] = Query(default=[]),
    search: Optional[str] = None,
    sort_by: str = Query(default="price", pattern="^(price|name|created_at)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceListResponse:
    filters = ServiceFilter(
        type=type,
        location_id=location_id,
        min_price=min_price,
        max_price=max_price,
        tags=tags,
        search=search,
        sort_by=sort_by,
        page=page,
        limit=limit,
    )
    return service.search_services(filters)


@router.post("/", response_model=ServiceSchema, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate,
    user_id: str = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceSchema:
    return service.create_service(user_id, payload)


@router.get("/{service_id}", response_model=ServiceSchema)
def get_service(
    service_id: str, service: CatalogService = Depends(get_catalog_service)
) -> ServiceSchema:
    return service.get_service(service_id)


@router.get("/{service_id}/availability", response_model=AvailabilitySchema)
def check_availability(
    service_id: str,
    on: date,
    quantity: int = Query(default=1, ge=1),
    service: CatalogService = Depends(get_catalog_service),
) -> AvailabilitySchema:
    return service.check_availability(service_id, on, quantity)
