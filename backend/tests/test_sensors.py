from datetime import timedelta

import pytest
from fastapi import HTTPException

from app.models.schemas import SensorCreate, SensorReadingCreate, SensorUpdate
from app.services.sensor_service import SensorService
from app.storage import seed
from conftest import NOW


def test_register_validates_type_location_and_mac(repository):
    service = SensorService(repository)

    with pytest.raises(HTTPException) as exc:
        service.register_sensor(
            seed.ADMIN_ID,
            SensorCreate(location_id=seed.ZLATNI_RAT, sensor_type="radar", name="Radar"),
        )
    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid sensor type. Must be: wifi, ble, or camera"

    with pytest.raises(HTTPException) as exc:
        service.register_sensor(
            seed.ADMIN_ID, SensorCreate(location_id="nowhere", sensor_type="ble", name="x")
        )
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        service.register_sensor(
            seed.ADMIN_ID,
            SensorCreate(
                location_id=seed.HVAR_TOWN,
                sensor_type="wifi",
                name="Copy",
                mac_address="AA:BB:CC:00:00:01",
            ),
        )
    assert exc.value.status_code == 409

    sensor = service.register_sensor(
        seed.ADMIN_ID,
        SensorCreate(location_id=seed.CARPE_DIEM, sensor_type="camera", name="Door camera", capacity=300),
    )
    assert sensor.sensor_type.value == "camera"
    assert [s.id for s in service.list_for_location(seed.CARPE_DIEM, now=NOW)] == [sensor.id]


def test_readings_are_calibrated(repository):
    service = SensorService(repository)
    service.update_sensor(seed.ADMIN_ID, seed.BEACH_SENSOR, SensorUpdate(calibration_factor=1.5), now=NOW)

    ack = service.submit_reading(seed.BEACH_SENSOR, SensorReadingCreate(count=101), now=NOW)

    assert ack.calibrated_count == 152
    assert ack.timestamp == NOW
    assert repository.get_sensor(seed.BEACH_SENSOR).last_calibrated == NOW


def test_inactive_sensor_rejects_readings(repository):
    service = SensorService(repository)
    service.update_sensor(seed.ADMIN_ID, seed.BEACH_SENSOR, SensorUpdate(is_active=False))

    with pytest.raises(HTTPException) as exc:
        service.submit_reading(seed.BEACH_SENSOR, SensorReadingCreate(count=5))
    assert exc.value.status_code == 400


def test_stats_over_window(repository):
    service = SensorService(repository)
    for minutes, count in ((10, 100), (20, 200), (30, 300)):
        service.submit_reading(
            seed.BEACH_SENSOR,
            SensorReadingCreate(count=count, timestamp=NOW - timedelta(minutes=minutes)),
        )
    service.submit_reading(
        seed.BEACH_SENSOR, SensorReadingCreate(count=999, timestamp=NOW - timedelta(days=2))
    )

    stats = service.get_stats(seed.BEACH_SENSOR, hours=24, now=NOW)

    assert stats.total_readings == 3
    assert stats.average_count == 200
    assert (stats.min_count, stats.max_count) == (100, 300)
    assert stats.utilization_rate == 40.0
    assert stats.period == "24h"
    assert len(service.get_sensor(seed.BEACH_SENSOR, now=NOW).readings) == 3


def test_delete_sensor_removes_readings(repository):
    service = SensorService(repository)
    service.submit_reading(seed.BEACH_SENSOR, SensorReadingCreate(count=3), now=NOW)

    service.delete_sensor(seed.ADMIN_ID, seed.BEACH_SENSOR)

    assert repository.get_sensor(seed.BEACH_SENSOR) is None
    assert repository.sensor_readings == []
    with pytest.raises(HTTPException):
        service.delete_sensor(seed.ADMIN_ID, seed.BEACH_SENSOR)


def test_sensor_management_is_admin_only(repository):
    service = SensorService(repository)
    payload = SensorCreate(location_id=seed.ZLATNI_RAT, sensor_type="ble", name="Kiosk beacon")

    for attempt in (
        lambda: service.register_sensor(seed.TOURIST_ID, payload),
        lambda: service.update_sensor(seed.TRANSPORT_USER_ID, seed.BEACH_SENSOR, SensorUpdate(capacity=1)),
        lambda: service.delete_sensor(seed.HOST_USER_ID, seed.BEACH_SENSOR),
    ):
        with pytest.raises(HTTPException) as exc:
            attempt()
        assert exc.value.status_code == 403

    assert repository.get_sensor(seed.BEACH_SENSOR).capacity == 500
    assert len(repository.sensors_for_location(seed.ZLATNI_RAT)) == 1
    # readings stay open to devices
    ack = service.submit_reading(seed.BEACH_SENSOR, SensorReadingCreate(count=4), now=NOW)
    assert ack.calibrated_count == 4
