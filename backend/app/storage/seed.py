"""Demo catalogue for the central Dalmatian coast.

Ids are stable so the dashboard, the docs and the tests can refer to them.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from app.models.domain import (
    AccommodationDetails,
    AccommodationType,
    Event,
    Location,
    LocationType,
    Sensor,
    SensorType,
    Service,
    ServiceType,
    Supplier,
    TourDetails,
    TransportDetails,
    TransportType,
    User,
    UserPreferences,
    UserRole,
)
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

TOURIST_ID = "demo-tourist"
TRANSPORT_USER_ID = "demo-supplier"
HOST_USER_ID = "demo-host"
ADMIN_ID = "demo-admin"

TRANSPORT_SUPPLIER_ID = "sup-adriatic-lines"
HOST_SUPPLIER_ID = "sup-hvar-stays"

SPLIT = "loc-split"
SPLIT_AIRPORT = "loc-split-airport"
SPLIT_PORT = "loc-split-port"
HVAR = "loc-hvar"
HVAR_TOWN = "loc-hvar-town"
HVAR_PORT = "loc-hvar-port"
CARPE_DIEM = "loc-carpe-diem"
BRAC = "loc-brac"
ZLATNI_RAT = "loc-zlatni-rat"
DUBROVNIK_PORT = "loc-dubrovnik-port"

AIRPORT_TAXI = "svc-airport-taxi"
AIRPORT_VIP = "svc-airport-vip"
CATAMARAN = "svc-catamaran-split-hvar"
CAR_FERRY = "svc-ferry-split-hvar"
HVAR_HOSTEL = "svc-hvar-hostel"
HVAR_APARTMENT = "svc-hvar-apartment"
HVAR_VILLA = "svc-hvar-villa"
PAKLENI_TOUR = "svc-pakleni-tour"
FORTRESS_TOUR = "svc-fortress-tour"
KAYAK = "svc-zlatni-rat-kayak"

BEACH_SENSOR = "sensor-zlatni-rat-wifi"


def _location(id, name, type_, lat, lon, parent=None) -> Location:
    return Location(
        id=id,
        name=name,
        slug=id.removeprefix("loc-"),
        type=type_,
        latitude=lat,
        longitude=lon,
        parent_id=parent,
    )


def seed_demo_data(repository: InMemoryRepository, now: Optional[datetime] = None) -> None:
    now = now or datetime.now()

    for user in [
        User(TOURIST_ID, "ana@example.com", "Ana", "Horvat", UserRole.TOURIST),
        User(TRANSPORT_USER_ID, "ops@adriatic-lines.hr", "Ivan", "Kovac", UserRole.SUPPLIER),
        User(HOST_USER_ID, "host@hvar-stays.hr", "Marija", "Novak", UserRole.SUPPLIER),
        User(ADMIN_ID, "admin@example.com", "Admin", "User", UserRole.ADMIN),
    ]:
        repository.save_user(user)
    repository.save_supplier(Supplier(TRANSPORT_SUPPLIER_ID, TRANSPORT_USER_ID, "Adriatic Lines"))
    repository.save_supplier(Supplier(HOST_SUPPLIER_ID, HOST_USER_ID, "Hvar Stays", 0.12))

    for location in [
        _location(SPLIT, "Split", LocationType.CITY, 43.5081, 16.4402),
        _location(SPLIT_AIRPORT, "Split Airport", LocationType.AIRPORT, 43.5389, 16.2980, SPLIT),
        _location(SPLIT_PORT, "Split Ferry Port", LocationType.PORT, 43.5025, 16.4405, SPLIT),
        _location(HVAR, "Hvar", LocationType.ISLAND, 43.1729, 16.4411),
        _location(HVAR_TOWN, "Hvar Town", LocationType.CITY, 43.1725, 16.4428, HVAR),
        _location(HVAR_PORT, "Hvar Town Harbour", LocationType.PORT, 43.1720, 16.4410, HVAR_TOWN),
        _location(CARPE_DIEM, "Carpe Diem", LocationType.NIGHTLIFE, 43.1712, 16.4390, HVAR_TOWN),
        _location(BRAC, "Brac", LocationType.ISLAND, 43.3088, 16.6528),
        _location(ZLATNI_RAT, "Zlatni Rat Beach", LocationType.BEACH, 43.2569, 16.6356, BRAC),
        _location(DUBROVNIK_PORT, "Dubrovnik Gruz Port", LocationType.PORT, 42.6589, 18.0856),
    ]:
        repository.save_location(location)

    transport = [
        (AIRPORT_TAXI, "Airport taxi to Split port", 35.0, TransportType.TAXI,
         SPLIT_AIRPORT, SPLIT_PORT, 30, "sedan"),
        (AIRPORT_VIP, "Private airport transfer", 80.0, TransportType.PRIVATE_TRANSFER,
         SPLIT_AIRPORT, SPLIT_PORT, 30, "minivan"),
        (CATAMARAN, "Split - Hvar catamaran", 22.0, TransportType.SPEEDBOAT,
         SPLIT_PORT, HVAR_PORT, 65, None),
        (CAR_FERRY, "Split - Hvar car ferry", 15.0, TransportType.FERRY,
         SPLIT_PORT, HVAR_PORT, 120, None),
    ]
    for sid, name, price, ttype, dep, arr, minutes, vehicle in transport:
        repository.save_service(
            Service(
                id=sid,
                supplier_id=TRANSPORT_SUPPLIER_ID,
                name=name,
                type=ServiceType.TRANSPORT,
                price=price,
                location_id=dep,
                capacity=300 if ttype in (TransportType.FERRY, TransportType.SPEEDBOAT) else 4,
                duration_minutes=minutes,
                tags=["transfer", ttype.value.lower()],
                transport=TransportDetails(ttype, dep, arr, vehicle_type=vehicle),
            )
        )

    stays = [
        (HVAR_HOSTEL, "Hvar harbour hostel", 35.0, AccommodationType.HOSTEL, 2, ["budget", "nightlife"]),
        (HVAR_APARTMENT, "Old town apartment", 120.0, AccommodationType.APARTMENT, 4, ["family", "sea view"]),
        (HVAR_VILLA, "Villa Pakleni view", 450.0, AccommodationType.VILLA, 8, ["luxury", "pool", "spa"]),
    ]
    for sid, name, price, atype, guests, tags in stays:
        repository.save_service(
            Service(
                id=sid,
                supplier_id=HOST_SUPPLIER_ID,
                name=name,
                type=ServiceType.ACCOMMODATION,
                price=price,
                location_id=HVAR_TOWN,
                capacity=1,
                tags=tags,
                accommodation=AccommodationDetails(atype, guests),
            )
        )

    repository.save_service(
        Service(
            id=PAKLENI_TOUR,
            supplier_id=TRANSPORT_SUPPLIER_ID,
            name="Pakleni islands boat tour",
            type=ServiceType.TOUR,
            price=65.0,
            location_id=HVAR,
            capacity=12,
            duration_minutes=360,
            tags=["islands", "boat", "swimming", "sea"],
            tour=TourDetails(meeting_point="Hvar Town riva", languages=["en", "hr"]),
        )
    )
    repository.save_service(
        Service(
            id=FORTRESS_TOUR,
            supplier_id=HOST_SUPPLIER_ID,
            name="Fortica fortress walk",
            type=ServiceType.TOUR,
            price=25.0,
            location_id=HVAR_TOWN,
            capacity=20,
            duration_minutes=120,
            tags=["history", "culture", "heritage"],
            tour=TourDetails(meeting_point="St. Stephen's square", languages=["en"]),
        )
    )
    repository.save_service(
        Service(
            id=KAYAK,
            supplier_id=TRANSPORT_SUPPLIER_ID,
            name="Zlatni Rat sea kayak",
            type=ServiceType.ACTIVITY,
            price=40.0,
            location_id=ZLATNI_RAT,
            capacity=10,
            duration_minutes=120,
            tags=["beach", "water", "adventure", "sport"],
        )
    )

    repository.save_event(
        Event(
            id="evt-hvar-summer-festival",
            location_id=HVAR_TOWN,
            name="Hvar Summer Festival",
            start_date=now - timedelta(hours=2),
            end_date=now + timedelta(days=2),
        )
    )
    repository.save_sensor(
        Sensor(
            id=BEACH_SENSOR,
            location_id=ZLATNI_RAT,
            sensor_type=SensorType.wifi,
            name="Zlatni Rat wifi counter",
            capacity=500,
            mac_address="AA:BB:CC:00:00:01",
        )
    )
    repository.save_preferences(
        UserPreferences(
            user_id=TOURIST_ID,
            travel_styles=["ADVENTURE", "CULTURAL"],
            interests=["BEACHES", "HISTORY"],
            min_budget=20.0,
            max_budget=150.0,
            home_location_id=SPLIT,
        )
    )
    logger.info(
        "Seeded %d locations and %d services", len(repository.locations), len(repository.services)
    )
