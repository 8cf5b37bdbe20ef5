from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import get_app_settings, get_current_user_id, get_repository
from app.core.config import Settings
from app.models.domain import LocationType
from app.models.schemas import (
    CrowdDataResponse,
    HeatmapResponse,
    PredictionResponse,
    ReadingAck,
    SensorCreate,
    SensorReadingCreate,
    SensorSchema,
    SensorStats,
    SensorUpdate,
)
from app.services.crowd_service import CrowdIntelligenceService
from app.services.prediction_service import PredictionService
from app.services.sensor_service import SensorService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_crowd_service(
    repository: InMemoryRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> CrowdIntelligenceService:
    return CrowdIntelligenceService(repository=repository, settings=settings)


def get_prediction_service(
    repository: InMemoryRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> PredictionService:
    return PredictionService(repository=repository, settings=settings)


def get_sensor_service(
    repository: InMemoryRepository = Depends(get_repository),
) -> SensorService:
    return SensorService(repository=repository)


@router.get("/heatmap", response_model=HeatmapResponse)
def get_heatmap(
    location_ids: List[str] = Query(default=[]),
    type: Optional[LocationType] = None,
    service: CrowdIntelligenceService = Depends(get_crowd_service),
) -> HeatmapResponse:
    return service.get_heatmap(location_ids or None, type)


@router.post("/refresh")
def refresh_all(service: CrowdIntelligenceService = Depends(get_crowd_service)) -> dict:
    return {"refreshed": service.update_all_crowd_data()}


@router.get("/locations/{location_id}", response_model=CrowdDataResponse)
def get_current(
    location_id: str, service: CrowdIntelligenceService = Depends(get_crowd_service)
) -> CrowdDataResponse:
    return service.get_current_crowd_data(location_id)


@router.post("/locations/{location_id}/refresh", response_model=CrowdDataResponse)
def refresh_location(
    location_id: str, service: CrowdIntelligenceService = Depends(get_crowd_service)
) -> CrowdDataResponse:
    return service.aggregate_crowd_data(location_id)


@router.get("/locations/{location_id}/history", response_model=List[CrowdDataResponse])
def get_history(
    location_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    service: CrowdIntelligenceService = Depends(get_crowd_service),
) -> List[CrowdDataResponse]:
    end = end or datetime.now()
    start = start or end - timedelta(hours=24)
    return service.get_history(location_id, start, end)


@router.get("/locations/{location_id}/predictions", response_model=PredictionResponse)
def get_predictions(
    location_id: str,
    on: Optional[date] = None,
    service: PredictionService = Depends(get_prediction_service),
) -> PredictionResponse:
    return service.get_predictions(location_id, on)


@router.get("/locations/{location_id}/sensors", response_model=List[SensorSchema])
def list_location_sensors(
    location_id: str, service: SensorService = Depends(get_sensor_service)
) -> List[SensorSchema]:
    return service.list_for_location(location_id)


@router.post("/sensors", response_model=SensorSchema, status_code=status.HTTP_201_CREATED)
def register_sensor(
    payload: SensorCreate,
    user_id: str = Depends(get_current_user_id),
    service: SensorService = Depends(get_sensor_service),
) -> SensorSchema:
    return service.register_sensor(user_id, payload)


@router.get("/sensors/{sensor_id}", response_model=SensorSchema)
def get_sensor(
    sensor_id: str, service: SensorService = Depends(get_sensor_service)
) -> SensorSchema:
    return service.get_sensor(sensor_id)


@router.patch("/sensors/{sensor_id}", response_model=SensorSchema)
def update_sensor(
    sensor_id: str,
    payload: SensorUpdate,
    user_id: str = Depends(get_current_user_id),
    service: SensorService = Depends(get_sensor_service),
) -> SensorSchema:
    return service.update_sensor(user_id, sensor_id, payload)


@router.delete("/sensors/{sensor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sensor(
    sensor_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SensorService = Depends(get_sensor_service),
) -> None:
    service.delete_sensor(user_id, sensor_id)


@router.post("/sensors/{sensor_id}/readings", response_model=ReadingAck)
def submit_reading(
    sensor_id: str,
    payload: SensorReadingCreate,
    service: SensorService = Depends(get_sensor_service),
) -> ReadingAck:
    return service.submit_reading(sensor_id, payload)


@router.get("/sensors/{sensor_id}/stats", response_model=SensorStats)
def get_sensor_stats(
    sensor_id: str,
    hours: int = Query(default=24, ge=1, le=24 * 30),
    service: SensorService = Depends(get_sensor_service),
) -> SensorStats:
    return service.get_stats(sensor_id, hours)
