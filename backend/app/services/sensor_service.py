import logging
from datetime import datetime, timedelta
from typing import List, Optional

import numpy as np
from fastapi import HTTPException

from app.core.rounding import round_half_up
from app.models.domain import Sensor, SensorReading, SensorType, new_id
from app.models.schemas import (
    ReadingAck,
    SensorCreate,
    SensorReadingCreate,
    SensorReadingSchema,
    SensorSchema,
    SensorStats,
    SensorUpdate,
)
from app.services.access import require_admin
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)


class SensorService:
    def __init__(self, repository: InMemoryRepository):
        self.repository = repository

    def _get_sensor(self, sensor_id: str) -> Sensor:
        sensor = self.repository.get_sensor(sensor_id)
        if not sensor:
            raise HTTPException(status_code=404, detail=f"Sensor {sensor_id} not found")
        return sensor

    def register_sensor(self, user_id: str, payload: SensorCreate) -> SensorSchema:
        require_admin(self.repository, user_id)
        try:
            sensor_type = SensorType(payload.sensor_type)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail="Invalid sensor type. Must be: wifi, ble, or camera",
            )
        if not self.repository.get_location(payload.location_id):
            raise HTTPException(status_code=404, detail=f"Location {payload.location_id} not found")
        if payload.mac_address and self.repository.get_sensor_by_mac(payload.mac_address):
            raise HTTPException(
                status_code=409, detail=f"Sensor with MAC {payload.mac_address} already exists"
            )

        sensor = self.repository.save_sensor(
            Sensor(
                id=new_id(),
                location_id=payload.location_id,
                sensor_type=sensor_type,
                name=payload.name,
                capacity=payload.capacity,
                threshold=payload.threshold,
                mac_address=payload.mac_address,
                ip_address=payload.ip_address,
                placement=payload.placement,
            )
        )
        logger.info("Registered %s sensor %s at %s", sensor_type.value, sensor.id, sensor.location_id)
        return SensorSchema.from_domain(sensor)

    def submit_reading(
        self, sensor_id: str, payload: SensorReadingCreate, now: Optional[datetime] = None
    ) -> ReadingAck:
        sensor = self._get_sensor(sensor_id)
        if not sensor.is_active:
            raise HTTPException(status_code=400, detail=f"Sensor {sensor_id} is inactive")

        reading = self.repository.save_reading(
            SensorReading(
                id=new_id(),
                sensor_id=sensor.id,
                count=round_half_up(payload.count * sensor.calibration_factor),
                timestamp=payload.timestamp or now or datetime.now(),
                raw_value=payload.raw_value,
                confidence=payload.confidence,
            )
        )
        logger.debug("Sensor %s reading %d", sensor.id, reading.count)
        return ReadingAck(
            reading_id=reading.id, calibrated_count=reading.count, timestamp=reading.timestamp
        )

    def get_sensor(self, sensor_id: str, now: Optional[datetime] = None) -> SensorSchema:
        sensor = self._get_sensor(sensor_id)
        return SensorSchema.from_domain(sensor, self._last_hour(sensor.id, now))

    def list_for_location(self, location_id: str, now: Optional[datetime] = None) -> List[SensorSchema]:
        return [
            SensorSchema.from_domain(s, self._last_hour(s.id, now))
            for s in self.repository.sensors_for_location(location_id)
        ]

    def _last_hour(self, sensor_id: str, now: Optional[datetime]) -> List[SensorReading]:
        since = (now or datetime.now()) - timedelta(hours=1)
        return self.repository.readings_for_sensor(sensor_id, since=since)

    def update_sensor(
        self, user_id: str, sensor_id: str, payload: SensorUpdate, now: Optional[datetime] = None
    ) -> SensorSchema:
        require_admin(self.repository, user_id)
        sensor = self._get_sensor(sensor_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        for field_name, value in changes.items():
            setattr(sensor, field_name, value)
        if "calibration_factor" in changes:
            sensor.last_calibrated = now or datetime.now()
        self.repository.save_sensor(sensor)
        return SensorSchema.from_domain(sensor)

    def delete_sensor(self, user_id: str, sensor_id: str) -> None:
        require_admin(self.repository, user_id)
        self._get_sensor(sensor_id)
        self.repository.delete_sensor(sensor_id)
        logger.info("Deleted sensor %s", sensor_id)

    def get_stats(self, sensor_id: str, hours: int = 24, now: Optional[datetime] = None) -> SensorStats:
        sensor = self._get_sensor(sensor_id)
        since = (now or datetime.now()) - timedelta(hours=hours)
        readings = self.repository.readings_for_sensor(sensor_id, since=since)
        counts = np.array([r.count for r in readings], dtype=float)

        average = float(counts.mean()) if counts.size else 0.0
        utilization = None
        if sensor.capacity and counts.size:
            utilization = round(average / sensor.capacity * 100, 1)

        return SensorStats(
            sensor_id=sensor.id,
            sensor_name=sensor.name,
            period=f"{hours}h",
            total_readings=int(counts.size),
            average_count=round_half_up(average),
            max_count=int(counts.max()) if counts.size else 0,
            min_count=int(counts.min()) if counts.size else 0,
            utilization_rate=utilization,
            readings=[SensorReadingSchema(count=r.count, timestamp=r.timestamp) for r in readings],
        )
