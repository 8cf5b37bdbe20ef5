from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from app.api.routes_locations import get_catalog_service
from app.models.schemas import EventCreate, EventSchema
from app.services.catalog_service import CatalogService

router = APIRouter()


@router.post("/", response_model=EventSchema, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate, service: CatalogService = Depends(get_catalog_service)
) -> EventSchema:
    return service.create_event(payload)


@router.get("/", response_model=List[EventSchema])
def list_events(
    location_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    service: CatalogService = Depends(get_catalog_service),
) -> List[EventSchema]:
    return service.list_events(location_id, start, end)


@router.get("/active", response_model=List[EventSchema])
def active_events(
    location_id: str, service: CatalogService = Depends(get_catalog_service)
) -> List[EventSchema]:
    return service.active_events(location_id)
