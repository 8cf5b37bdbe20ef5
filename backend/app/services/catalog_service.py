import logging
import re
from datetime import date, datetime
from typing import List, Optional

from fastapi import HTTPException

from app.models.domain import (
    BookingStatus,
    Event,
    Location,
    LocationType,
    Service,
    new_id,
)
from app.models.schemas import (
    AvailabilitySchema,
    EventCreate,
    EventSchema,
    LocationCreate,
    LocationSchema,
    ServiceCreate,
    ServiceFilter,
    ServiceListResponse,
    ServiceSchema,
)
from app.services.access import require_admin
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


class CatalogService:
    """Locations, supplier services and local events."""

    def __init__(self, repository: InMemoryRepository):
        self.repository = repository

    # locations

    def get_location(self, location_id: str) -> LocationSchema:
        location = self.repository.get_location(location_id)
        if not location:
            raise HTTPException(status_code=404, detail=f"Location {location_id} not found")
        return LocationSchema.from_domain(location)

    def create_location(self, user_id: str, payload: LocationCreate) -> LocationSchema:
        require_admin(self.repository, user_id)
        if payload.parent_id and not self.repository.get_location(payload.parent_id):
            raise HTTPException(status_code=404, detail=f"Parent location {payload.parent_id} not found")
        location = self.repository.save_location(
            Location(
                id=new_id(),
                name=payload.name,
                slug=payload.slug or slugify(payload.name),
                type=payload.type,
                latitude=payload.latitude,
                longitude=payload.longitude,
                parent_id=payload.parent_id,
                description=payload.description,
            )
        )
        logger.info("Created location %s (%s)", location.name, location.type.value)
        return LocationSchema.from_domain(location)

    def list_locations(
        self,
        type: Optional[LocationType] = None,
        parent_id: Optional[str] = None,
        search: Optional[str] = None,
        active_only: bool = True,
    ) -> List[LocationSchema]:
        results = []
        for location in self.repository.list_locations(active_only=active_only):
            if type and location.type != type:
                continue
            if parent_id and location.parent_id != parent_id:
                continue
            if search and search.lower() not in location.name.lower():
                continue
            results.append(LocationSchema.from_domain(location))
        return sorted(results, key=lambda l: l.name)

    def get_children(self, location_id: str) -> List[LocationSchema]:
        self.get_location(location_id)
        return [LocationSchema.from_domain(l) for l in self.repository.children_of(location_id)]

    def descendant_ids(self, location_id: str) -> List[str]:
        """Ids of every active location below `location_id`, depth first."""
        ids = []
        for child in self.repository.children_of(location_id):
            ids.append(child.id)
            ids.extend(self.descendant_ids(child.id))
        return ids

    def get_descendants(self, location_id: str) -> List[LocationSchema]:
        self.get_location(location_id)
        return [
            LocationSchema.from_domain(self.repository.get_location(i))
            for i in self.descendant_ids(location_id)
        ]

    # services

    def _get_service(self, service_id: str) -> Service:
        service = self.repository.get_service(service_id)
        if not service:
            raise HTTPException(status_code=404, detail=f"Service {service_id} not found")
        return service

    def get_service(self, service_id: str) -> ServiceSchema:
        return ServiceSchema.from_domain(self._get_service(service_id))

    def create_service(self, user_id: str, payload: ServiceCreate) -> ServiceSchema:
        supplier = self.repository.get_supplier_by_user(user_id)
        if not supplier:
            raise HTTPException(status_code=403, detail="Only suppliers can create services")
        if payload.location_id and not self.repository.get_location(payload.location_id):
            raise HTTPException(status_code=404, detail=f"Location {payload.location_id} not found")
        if payload.transport:
            for loc_id in (payload.transport.departure_location_id, payload.transport.arrival_location_id):
                if not self.repository.get_location(loc_id):
                    raise HTTPException(status_code=404, detail=f"Location {loc_id} not found")

        service = self.repository.save_service(
            Service(
                id=new_id(),
                supplier_id=supplier.id,
                name=payload.name,
                type=payload.type,
                price=payload.price,
                location_id=payload.location_id,
                currency=payload.currency,
                description=payload.description,
                capacity=payload.capacity,
                duration_minutes=payload.duration_minutes,
                tags=payload.tags,
                transport=payload.transport.to_domain() if payload.transport else None,
                accommodation=payload.accommodation.to_domain() if payload.accommodation else None,
                tour=payload.tour.to_domain() if payload.tour else None,
            )
        )
        logger.info("Supplier %s created service %s", supplier.id, service.name)
        return ServiceSchema.from_domain(service)

    def search_services(self, filters: ServiceFilter) -> ServiceListResponse:
        location_ids = None
        if filters.location_id:
            location_ids = {filters.location_id, *self.descendant_ids(filters.location_id)}
        wanted_tags = {t.lower() for t in filters.tags}
        text = filters.search.lower() if filters.search else None

        matches = []
        for service in self.repository.list_services():
            if not service.is_bookable:
                continue
            if filters.type and service.type != filters.type:
                continue
            if location_ids is not None and service.location_id not in location_ids:
                continue
            if filters.min_price is not None and service.price < filters.min_price:
                continue
            if filters.max_price is not None and service.price > filters.max_price:
                continue
            if wanted_tags and not wanted_tags & {t.lower() for t in service.tags}:
                continue
            if text and text not in service.name.lower() and text not in service.description.lower():
                continue
            matches.append(service)

        key = {
            "price": lambda s: s.price,
            "name": lambda s: s.name.lower(),
            "created_at": lambda s: s.created_at,
        }[filters.sort_by]
        matches.sort(key=key, reverse=filters.sort_by == "created_at")

        start = (filters.page - 1) * filters.limit
        return ServiceListResponse(
            services=[ServiceSchema.from_domain(s) for s in matches[start:start + filters.limit]],
            total=len(matches),
            page=filters.page,
            limit=filters.limit,
        )

    def check_availability(self, service_id: str, on: date, quantity: int = 1) -> AvailabilitySchema:
        service = self._get_service(service_id)
        result = AvailabilitySchema(
            service_id=service.id,
            service_name=service.name,
            date=on,
            available=True,
            requested_quantity=quantity,
        )
        if not service.is_bookable:
            result.available = False
            result.reason = f"{service.name} is not available for booking"
            return result
        if service.capacity is None:
            return result

        booked = sum(
            item.quantity
            for booking in self.repository.bookings_for_service(service.id)
            if booking.status in ACTIVE_BOOKING_STATUSES and booking.service_date.date() == on
            for item in booking.items
            if item.service_id == service.id
        )
        result.available_capacity = max(0, service.capacity - booked)
        if result.available_capacity < quantity:
            result.available = False
            result.reason = (
                f"{service.name}: only {result.available_capacity} left on {on.isoformat()}"
            )
        return result

    # events

    def create_event(self, payload: EventCreate) -> EventSchema:
        if not self.repository.get_location(payload.location_id):
            raise HTTPException(status_code=404, detail=f"Location {payload.location_id} not found")
        event = self.repository.save_event(Event(id=new_id(), **payload.model_dump()))
        logger.info("Created event %s at %s", event.name, event.location_id)
        return EventSchema.from_domain(event)

    def list_events(
        self,
        location_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[EventSchema]:
        events = []
        for event in self.repository.events_for_location(location_id):
            if start and event.end_date < start:
                continue
            if end and event.start_date > end:
                continue
            events.append(EventSchema.from_domain(event))
        return events

    def active_events(self, location_id: str, at: Optional[datetime] = None) -> List[EventSchema]:
        at = at or datetime.now()
        return [
            EventSchema.from_domain(e)
            for e in self.repository.events_for_location(location_id)
            if e.start_date <= at <= e.end_date
        ]
