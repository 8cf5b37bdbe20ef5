import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence

from app.models.domain import (
    BudgetLevel,
    Location,
    LocationType,
    SegmentType,
    Service,
    ServiceType,
    TransportType,
)
from app.services.geo import haversine_km
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

AIRPORT_TRANSFER_MINUTES = 30
FERRY_MINUTES = 90
TRANSFER_TYPES = (TransportType.TAXI, TransportType.PRIVATE_TRANSFER)
FERRY_TYPES = (TransportType.FERRY, TransportType.SPEEDBOAT)


@dataclass
class RouteLeg:
    segment_type: SegmentType
    from_location_id: str
    to_location_id: str
    departure_time: datetime
    arrival_time: datetime
    duration: int
    price: float
    service_id: Optional[str] = None
    metadata: Dict[str, object] = field(default_factory=dict)


class RoutePlanner:
    """
    Greedy composer for a coastal trip: airport transfer to the nearest port,
    a boat to the destination island, then a stay until the end date. A leg
    that cannot be served is skipped and the next step starts from wherever
    the traveller already is.
    """

    def __init__(self, repository: InMemoryRepository):
        self.repository = repository

    def calculate_optimal_route(
        self,
        origin_id: str,
        dest_id: str,
        start: date,
        end: date,
        travelers: int = 1,
        budget: BudgetLevel = BudgetLevel.STANDARD,
    ) -> List[RouteLeg]:
        origin = self.repository.get_location(origin_id)
        destination = self.repository.get_location(dest_id)
        if not origin or not destination:
            return []

        start_at = datetime.combine(start, time())
        end_at = datetime.combine(end, time())

        def day_number(moment: datetime) -> int:
            return max(1, (moment - start_at).days + 1)

        legs: List[RouteLeg] = []
        current = origin
        current_time = start_at

        if origin.type == LocationType.AIRPORT:
            port = self.find_nearest_port(origin)
            transfer = self.find_transport(origin.id, [port.id], TRANSFER_TYPES) if port else None
            if transfer:
                arrival = current_time + timedelta(minutes=AIRPORT_TRANSFER_MINUTES)
                legs.append(
                    RouteLeg(
                        segment_type=SegmentType.AIRPORT_TRANSFER,
                        from_location_id=origin.id,
                        to_location_id=port.id,
                        departure_time=current_time,
                        arrival_time=arrival,
                        duration=AIRPORT_TRANSFER_MINUTES,
                        price=transfer.price,
                        service_id=transfer.id,
                        metadata={
                            "dayNumber": day_number(current_time),
                            "transportType": transfer.transport.transport_type.value,
                            "vehicleType": transfer.transport.vehicle_type,
                        },
                    )
                )
                current, current_time = port, arrival

        if destination.type == LocationType.ISLAND or destination.parent_id:
            ferry = self.find_ferry(current.id, destination.id, budget)
            if ferry:
                arrival = current_time + timedelta(minutes=FERRY_MINUTES)
                legs.append(
                    RouteLeg(
                        segment_type=SegmentType.FERRY,
                        from_location_id=current.id,
                        to_location_id=destination.id,
                        departure_time=current_time,
                        arrival_time=arrival,
                        duration=FERRY_MINUTES,
                        price=ferry.price,
                        service_id=ferry.id,
                        metadata={
                            "dayNumber": day_number(current_time),
                            "transportType": ferry.transport.transport_type.value,
                        },
                    )
                )
                current, current_time = destination, arrival

        stay = self.find_accommodation(destination.id, travelers, budget)
        if stay and end_at > current_time:
            nights = math.ceil((end_at - current_time) / timedelta(days=1))
            legs.append(
                RouteLeg(
                    segment_type=SegmentType.ACCOMMODATION,
                    from_location_id=stay.location_id,
                    to_location_id=stay.location_id,
                    departure_time=current_time,
                    arrival_time=end_at,
                    duration=nights * 24 * 60,
                    price=stay.price * nights,
                    service_id=stay.id,
                    metadata={
                        "dayNumber": day_number(current_time),
                        "accommodationType": stay.accommodation.accommodation_type.value,
                        "nights": nights,
                        "checkInTime": stay.accommodation.check_in_time,
                        "checkOutTime": stay.accommodation.check_out_time,
                    },
                )
            )

        logger.info(
            "Planned %d legs from %s to %s", len(legs), origin.name, destination.name
        )
        return legs

    def find_nearest_port(self, location: Location) -> Optional[Location]:
        ports = [
            loc
            for loc in self.repository.list_locations(active_only=True)
            if loc.type == LocationType.PORT
        ]
        if not ports:
            return None
        return min(
            ports,
            key=lambda p: haversine_km(location.latitude, location.longitude, p.latitude, p.longitude),
        )

    def _transports(
        self,
        departure_ids: Sequence[str],
        arrival_ids: Sequence[str],
        types: Sequence[TransportType],
    ) -> List[Service]:
        return [
            s
            for s in self.repository.list_services()
            if s.is_bookable
            and s.type == ServiceType.TRANSPORT
            and s.transport is not None
            and s.transport.transport_type in types
            and s.transport.departure_location_id in departure_ids
            and s.transport.arrival_location_id in arrival_ids
        ]

    def find_transport(
        self, from_id: str, to_ids: Sequence[str], types: Sequence[TransportType]
    ) -> Optional[Service]:
        candidates = self._transports([from_id], to_ids, types)
        return min(candidates, key=lambda s: s.price) if candidates else None

    def descendant_ports(self, location_id: str) -> List[str]:
        ports = []
        location = self.repository.get_location(location_id)
        if location and location.type == LocationType.PORT and location.is_active:
            ports.append(location.id)
        for child in self.repository.children_of(location_id):
            if child.type == LocationType.PORT:
                ports.append(child.id)
            else:
                ports.extend(self.descendant_ports(child.id))
        return ports

    def find_ferry(self, from_id: str, to_id: str, budget: BudgetLevel) -> Optional[Service]:
        candidates = self._transports([from_id], [to_id], FERRY_TYPES)
        if not candidates:
            departure_ports = self.descendant_ports(from_id)
            arrival_ports = self.descendant_ports(to_id)
            if departure_ports and arrival_ports:
                candidates = self._transports(departure_ports, arrival_ports, FERRY_TYPES)
        if not candidates:
            return None
        premium = budget in (BudgetLevel.PREMIUM, BudgetLevel.LUXURY)
        return sorted(candidates, key=lambda s: s.price, reverse=premium)[0]

    def _stays(self, location_ids: Sequence[str], travelers: int) -> List[Service]:
        return [
            s
            for s in self.repository.list_services()
            if s.is_bookable
            and s.type == ServiceType.ACCOMMODATION
            and s.accommodation is not None
            and s.accommodation.max_guests >= travelers
            and s.location_id in location_ids
        ]

    def find_accommodation(
        self, location_id: str, travelers: int, budget: BudgetLevel
    ) -> Optional[Service]:
        candidates = self._stays([location_id], travelers)
        if not candidates:
            nearby = [location_id] + [c.id for c in self.repository.children_of(location_id)]
            candidates = self._stays(nearby, travelers)
        if not candidates:
            return None
        return sorted(candidates, key=lambda s: s.price, reverse=budget == BudgetLevel.LUXURY)[0]
