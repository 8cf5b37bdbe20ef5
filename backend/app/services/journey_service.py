import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException

from app.core.config import Settings, get_settings
from app.core.rounding import round_half_up
from app.models.domain import (
    Booking,
    BookingItem,
    BookingStatus,
    Journey,
    JourneySegment,
    JourneyStatus,
    SegmentType,
    ServiceType,
    new_id,
)
from app.models.schemas import (
    AddSegmentRequest,
    BookJourneyRequest,
    JourneyListResponse,
    JourneySchema,
    LocationBrief,
    PlanJourneyRequest,
    RecalculateAllResponse,
    SegmentSchema,
    ServiceSchema,
    UpdateJourneyRequest,
    UpdateSegmentRequest,
)
from app.services.booking_service import booking_reference, package_id
from app.services.notification_service import NotificationService
from app.services.route_planner import RoutePlanner
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

PLANNING_STATUSES = (JourneyStatus.PLANNING, JourneyStatus.READY)
BOOKABLE_STATUSES = (JourneyStatus.PLANNING, JourneyStatus.READY, JourneyStatus.PENDING_CHANGES)
LOCKED_STATUSES = (JourneyStatus.CONFIRMED, JourneyStatus.IN_PROGRESS, JourneyStatus.COMPLETED)
PER_PERSON_SEGMENTS = (SegmentType.TOUR, SegmentType.ACTIVITY)
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

SEGMENT_SERVICE_TYPES: Dict[SegmentType, ServiceType] = {
    SegmentType.FERRY: ServiceType.TRANSPORT,
    SegmentType.TRANSPORT: ServiceType.TRANSPORT,
    SegmentType.AIRPORT_TRANSFER: ServiceType.TRANSPORT,
    SegmentType.ACCOMMODATION: ServiceType.ACCOMMODATION,
    SegmentType.TOUR: ServiceType.TOUR,
    SegmentType.ACTIVITY: ServiceType.ACTIVITY,
    SegmentType.EVENT: ServiceType.EVENT_TICKET,
}


@dataclass
class _BookingGroup:
    segments: List[JourneySegment]
    service_id: str
    supplier_id: str
    check_in: datetime
    check_out: datetime
    total_amount: float
    metadata: Dict[str, object] = field(default_factory=dict)


def minutes_between(start: datetime, end: datetime) -> int:
    return round_half_up((end - start).total_seconds() / 60)


class JourneyService:
    """
    Multi-leg trips: a journey is planned (empty or auto-routed), edited
    segment by segment, then booked in one go as a package of bookings.
    """

    def __init__(
        self,
        repository: InMemoryRepository,
        settings: Optional[Settings] = None,
        notifications: Optional[NotificationService] = None,
        planner: Optional[RoutePlanner] = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.notifications = notifications or NotificationService(repository)
        self.planner = planner or RoutePlanner(repository)

    # lookups

    def _owned_journey(self, journey_id: str, user_id: str) -> Journey:
        journey = self.repository.get_journey(journey_id)
        if not journey:
            raise HTTPException(status_code=404, detail=f"Journey {journey_id} not found")
        if journey.user_id != user_id:
            raise HTTPException(status_code=403, detail="You do not have access to this journey")
        return journey

    @staticmethod
    def _segment(journey: Journey, segment_id: str) -> JourneySegment:
        segment = next((s for s in journey.segments if s.id == segment_id), None)
        if not segment:
            raise HTTPException(
                status_code=404, detail=f"Segment {segment_id} not found in this journey"
            )
        return segment

    @staticmethod
    def _recalculate_total(journey: Journey) -> None:
        journey.total_price = round(sum(s.price for s in journey.segments if not s.is_cancelled), 2)

    def _touch(self, journey: Journey, now: Optional[datetime] = None) -> Journey:
        journey.segments.sort(key=lambda s: s.segment_order)
        self._recalculate_total(journey)
        journey.updated_at = now or datetime.now()
        return self.repository.save_journey(journey)

    # planning

    def plan_journey(
        self, user_id: str, payload: PlanJourneyRequest, now: Optional[datetime] = None
    ) -> JourneySchema:
        now = now or datetime.now()
        logger.info(
            "Planning journey for user %s from %s to %s",
            user_id,
            payload.origin_location_id,
            payload.dest_location_id,
        )
        for location_id in (payload.origin_location_id, payload.dest_location_id):
            if not self.repository.get_location(location_id):
                raise HTTPException(status_code=404, detail=f"Location {location_id} not found")
        if payload.end_date <= payload.start_date:
            raise HTTPException(status_code=400, detail="end_date must be after start_date")

        limit = self.settings.max_planning_journeys
        planning = [
            j for j in self.repository.journeys_for_user(user_id) if j.status in PLANNING_STATUSES
        ]
        if len(planning) >= limit:
            raise HTTPException(
                status_code=400,
                detail=f"You have reached the maximum of {limit} planned journeys. "
                "Please book or delete an existing journey to create a new one.",
            )

        journey = Journey(
            id=new_id(),
            user_id=user_id,
            name=payload.name or "My Croatian Adventure",
            origin_location_id=payload.origin_location_id,
            dest_location_id=payload.dest_location_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            travelers=payload.travelers,
            currency=self.settings.currency,
            preferences=payload.preferences.model_dump(mode="json"),
            created_at=now,
            updated_at=now,
        )

        if payload.auto_plan:
            legs = self.planner.calculate_optimal_route(
                payload.origin_location_id,
                payload.dest_location_id,
                payload.start_date,
                payload.end_date,
                payload.travelers,
                payload.preferences.budget,
            )
            for order, leg in enumerate(legs, start=1):
                journey.segments.append(
                    JourneySegment(
                        id=new_id(),
                        journey_id=journey.id,
                        segment_type=leg.segment_type,
                        segment_order=order,
                        departure_time=leg.departure_time,
                        arrival_time=leg.arrival_time,
                        duration=leg.duration,
                        price=leg.price,
                        currency=journey.currency,
                        service_id=leg.service_id,
                        departure_location_id=leg.from_location_id,
                        arrival_location_id=leg.to_location_id,
                        metadata=dict(leg.metadata),
                    )
                )
            journey.optimized_route = {
                "legs": len(legs),
                "total_price": round(sum(leg.price for leg in legs), 2),
                "total_duration": sum(leg.duration for leg in legs),
                "segment_types": [leg.segment_type.value for leg in legs],
            }

        self._touch(journey, now)
        logger.info("Journey %s created with %d segments", journey.id, len(journey.segments))
        return self.to_schema(journey)

    def get_journey(self, journey_id: str, user_id: str) -> JourneySchema:
        return self.to_schema(self._owned_journey(journey_id, user_id))

    def list_journeys(self, user_id: str, page: int = 1, limit: int = 10) -> JourneyListResponse:
        journeys = self.repository.journeys_for_user(user_id)
        start = (page - 1) * limit
        return JourneyListResponse(
            journeys=[self.to_schema(j) for j in journeys[start:start + limit]],
            total=len(journeys),
            page=page,
            limit=limit,
        )

    def update_journey(
        self, journey_id: str, user_id: str, payload: UpdateJourneyRequest
    ) -> JourneySchema:
        journey = self._owned_journey(journey_id, user_id)
        if journey.status in LOCKED_STATUSES:
            raise HTTPException(status_code=400, detail="Cannot update journey in current status")

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        start = changes.get("start_date", journey.start_date)
        end = changes.get("end_date", journey.end_date)
        if end <= start:
            raise HTTPException(status_code=400, detail="end_date must be after start_date")
        for name, value in changes.items():
            setattr(journey, name, value)

        if "travelers" in changes:
            for segment in journey.segments:
                service = self.repository.get_service(segment.service_id) if segment.service_id else None
                if service and segment.segment_type in PER_PERSON_SEGMENTS:
                    segment.price = service.price * journey.travelers
        self._touch(journey)
        return self.to_schema(journey)

    def delete_journey(self, journey_id: str, user_id: str) -> None:
        journey = self._owned_journey(journey_id, user_id)
        if self._active_bookings(journey):
            raise HTTPException(
                status_code=400,
                detail="Cannot delete journey with active bookings. Please cancel all bookings first.",
            )
        self.repository.delete_journey(journey.id)
        logger.info("Deleted journey %s", journey.id)

    def _bookings(self, journey: Journey) -> List[Booking]:
        ids = {s.booking_id for s in journey.segments if s.booking_id}
        return [b for b in (self.repository.get_booking(i) for i in ids) if b]

    def _active_bookings(self, journey: Journey) -> List[Booking]:
        return [b for b in self._bookings(journey) if b.status in ACTIVE_BOOKING_STATUSES]

    # segments

    def add_segment(
        self, journey_id: str, user_id: str, payload: AddSegmentRequest
    ) -> JourneySchema:
        journey = self._owned_journey(journey_id, user_id)
        if journey.status == JourneyStatus.COMPLETED:
            raise HTTPException(status_code=400, detail="Cannot modify completed journey")
        if journey.status == JourneyStatus.CONFIRMED:
            raise HTTPException(
                status_code=400,
                detail="Cannot modify confirmed journey. "
                "If you need to make changes, cancel the booking first.",
            )

        if payload.service_id:
            service = self.repository.get_service(payload.service_id)
            if not service:
                raise HTTPException(status_code=404, detail=f"Service {payload.service_id} not found")
            price = service.price
            if payload.segment_type in PER_PERSON_SEGMENTS:
                price = service.price * journey.travelers
            currency = service.currency
        else:
            if payload.price is None or not payload.currency:
                raise HTTPException(
                    status_code=400,
                    detail="Price and currency are required for segments without a service",
                )
            price, currency = payload.price, payload.currency

        if payload.insert_after_order:
            for segment in journey.segments:
                if segment.segment_order > payload.insert_after_order:
                    segment.segment_order += 1
            order = payload.insert_after_order + 1
        else:
            order = len(journey.segments) + 1

        metadata = {"dayNumber": payload.day_number, "timeOfDay": payload.time_of_day}
        metadata.update(payload.metadata)
        journey.segments.append(
            JourneySegment(
                id=new_id(),
                journey_id=journey.id,
                segment_type=payload.segment_type,
                segment_order=order,
                departure_time=payload.departure_time,
                arrival_time=payload.arrival_time,
                duration=payload.duration or minutes_between(payload.departure_time, payload.arrival_time),
                price=price,
                currency=currency,
                service_id=payload.service_id,
                departure_location_id=payload.departure_location_id,
                arrival_location_id=payload.arrival_location_id,
                metadata=metadata,
            )
        )
        self._touch(journey)
        return self.to_schema(journey)

    def _check_editable(self, journey: Journey) -> None:
        if journey.status in (JourneyStatus.CONFIRMED, JourneyStatus.COMPLETED):
            raise HTTPException(status_code=400, detail="Cannot modify confirmed or completed journey")

    def update_segment(
        self, journey_id: str, segment_id: str, user_id: str, payload: UpdateSegmentRequest
    ) -> JourneySchema:
        journey = self._owned_journey(journey_id, user_id)
        segment = self._segment(journey, segment_id)
        self._check_editable(journey)

        if payload.service_id is not None:
            service = self.repository.get_service(payload.service_id)
            if not service:
                raise HTTPException(status_code=404, detail=f"Service {payload.service_id} not found")
            segment.service_id = service.id
            segment.price = service.price
            if segment.segment_type in PER_PERSON_SEGMENTS:
                segment.price = service.price * journey.travelers
            segment.currency = service.currency

        for name in ("departure_time", "arrival_time", "departure_location_id", "arrival_location_id", "notes"):
            value = getattr(payload, name)
            if value is not None:
                setattr(segment, name, value)
        if payload.departure_time or payload.arrival_time:
            segment.duration = minutes_between(segment.departure_time, segment.arrival_time)

        self._touch(journey)
        return self.to_schema(journey)

    def delete_segment(self, journey_id: str, segment_id: str, user_id: str) -> JourneySchema:
        journey = self._owned_journey(journey_id, user_id)
        segment = self._segment(journey, segment_id)
        self._check_editable(journey)

        journey.segments.remove(segment)
        for other in journey.segments:
            if other.segment_order > segment.segment_order:
                other.segment_order -= 1
        self._touch(journey)
        return self.to_schema(journey)

    # booking

    def book_journey(
        self,
        journey_id: str,
        user_id: str,
        payload: Optional[BookJourneyRequest] = None,
        now: Optional[datetime] = None,
    ) -> JourneySchema:
        now = now or datetime.now()
        payload = payload or BookJourneyRequest()
        journey = self._owned_journey(journey_id, user_id)
        if journey.status not in BOOKABLE_STATUSES:
            raise HTTPException(
                status_code=400,
                detail="Journey must be in PLANNING, READY, or PENDING_CHANGES status to book",
            )

        to_book = [
            s for s in sorted(journey.segments, key=lambda s: s.segment_order)
            if not s.is_booked and not s.is_cancelled
        ]
        if not to_book:
            raise HTTPException(
                status_code=400,
                detail="No segments available for booking. "
                "All segments are either already booked or cancelled.",
            )

        groups = self._group_segments(to_book)
        shared_package = package_id()
        rebooking = journey.status == JourneyStatus.PENDING_CHANGES
        bookings = []
        for group in groups:
            booking = self.repository.save_booking(
                Booking(
                    id=new_id(),
                    reference=booking_reference(),
                    user_id=user_id,
                    supplier_id=group.supplier_id,
                    status=BookingStatus.PENDING,
                    total_amount=round(group.total_amount, 2),
                    commission=round(group.total_amount * self.settings.platform_commission_rate, 2),
                    service_date=group.check_in,
                    currency=journey.currency,
                    package_booking_id=shared_package,
                    notes=payload.notes,
                    items=[
                        BookingItem(
                            service_id=group.service_id,
                            quantity=journey.travelers,
                            unit_price=round(group.total_amount / journey.travelers, 2),
                            total_price=round(group.total_amount, 2),
                            metadata={
                                **payload.guest_details,
                                "segmentIds": [s.id for s in group.segments],
                                "checkIn": group.check_in.isoformat(),
                                "checkOut": group.check_out.isoformat(),
                                "dayCount": len(group.segments),
                            },
                        )
                    ],
                    created_at=now,
                    updated_at=now,
                )
            )
            self.notifications.notify_supplier_new_booking(booking)
            for segment in group.segments:
                segment.booking_id = booking.id
                segment.is_booked = True
            bookings.append(booking)

        for segment in journey.segments:
            if not segment.is_cancelled:
                segment.is_confirmed = True
        journey.status = JourneyStatus.CONFIRMED
        self._touch(journey, now)
        logger.info(
            "Journey %s %s with %d new bookings",
            journey.id,
            "rebooked" if rebooking else "booked",
            len(bookings),
        )
        return self.to_schema(journey)

    def _group_segments(self, segments: List[JourneySegment]) -> List[_BookingGroup]:
        """Consecutive nights at the same stay become one booking, every other segment its own."""
        groups: List[_BookingGroup] = []
        open_stay: Optional[_BookingGroup] = None
        for segment in segments:
            service = self.repository.get_service(segment.service_id) if segment.service_id else None
            if not service:
                raise HTTPException(
                    status_code=400,
                    detail=f"Segment {segment.id} does not have an associated service",
                )
            if segment.segment_type == SegmentType.ACCOMMODATION:
                if open_stay and open_stay.service_id == service.id:
                    open_stay.segments.append(segment)
                    open_stay.total_amount += segment.price
                    open_stay.check_out = segment.arrival_time + timedelta(days=1)
                    continue
                if open_stay:
                    groups.append(open_stay)
                open_stay = _BookingGroup(
                    segments=[segment],
                    service_id=service.id,
                    supplier_id=service.supplier_id,
                    check_in=segment.departure_time,
                    check_out=segment.arrival_time + timedelta(days=1),
                    total_amount=segment.price,
                )
                continue
            if open_stay:
                groups.append(open_stay)
                open_stay = None
            groups.append(
                _BookingGroup(
                    segments=[segment],
                    service_id=service.id,
                    supplier_id=service.supplier_id,
                    check_in=segment.departure_time,
                    check_out=segment.arrival_time,
                    total_amount=segment.price,
                )
            )
        if open_stay:
            groups.append(open_stay)
        return groups

    # lifecycle

    def complete_journey(self, journey_id: str, user_id: str) -> JourneySchema:
        journey = self.repository.get_journey(journey_id)
        if not journey or journey.user_id != user_id:
            raise HTTPException(status_code=404, detail=f"Journey {journey_id} not found")
        journey.status = JourneyStatus.COMPLETED
        self._touch(journey)
        logger.info("Journey %s marked as COMPLETED", journey.id)
        return self.to_schema(journey)

    def get_cancelled_segments(self, journey_id: str, user_id: str) -> List[SegmentSchema]:
        journey = self.repository.get_journey(journey_id)
        if not journey or journey.user_id != user_id:
            raise HTTPException(status_code=404, detail=f"Journey {journey_id} not found")
        return [self._segment_schema(s) for s in journey.segments if s.is_cancelled]

    def _cancelled_segment(self, journey_id: str, segment_id: str, user_id: str):
        journey = self.repository.get_journey(journey_id)
        segment = next((s for s in journey.segments if s.id == segment_id), None) if journey else None
        if not segment or journey.user_id != user_id:
            raise HTTPException(status_code=404, detail=f"Segment {segment_id} not found")
        if not segment.is_cancelled:
            raise HTTPException(status_code=400, detail="Segment is not cancelled")
        return journey, segment

    def find_replacement_services(
        self, journey_id: str, segment_id: str, user_id: str
    ) -> List[ServiceSchema]:
        _, segment = self._cancelled_segment(journey_id, segment_id, user_id)
        wanted = SEGMENT_SERVICE_TYPES.get(segment.segment_type, ServiceType.TRANSPORT)

        departures = self._endpoint_ids(segment.departure_location_id)
        arrivals = self._endpoint_ids(segment.arrival_location_id)
        candidates = []
        for service in self.repository.list_services():
            if not service.is_bookable or service.type != wanted:
                continue
            if wanted == ServiceType.TRANSPORT:
                if not service.transport or (
                    service.transport.departure_location_id not in departures
                    or service.transport.arrival_location_id not in arrivals
                ):
                    continue
            if wanted == ServiceType.ACCOMMODATION and segment.arrival_location_id:
                if service.location_id != segment.arrival_location_id:
                    continue
            candidates.append(service)
        candidates.sort(key=lambda s: s.price)
        return [ServiceSchema.from_domain(s) for s in candidates[:10]]

    def _endpoint_ids(self, location_id: Optional[str]) -> set:
        """A planned ferry leg ends at the island, the boat itself docks at one of its ports."""
        if not location_id:
            return {None}
        return {location_id, *self.planner.descendant_ports(location_id)}

    def replace_segment(
        self, journey_id: str, segment_id: str, service_id: str, user_id: str
    ) -> JourneySchema:
        journey, segment = self._cancelled_segment(journey_id, segment_id, user_id)
        service = self.repository.get_service(service_id)
        if not service:
            raise HTTPException(status_code=404, detail=f"Service {service_id} not found")

        segment.service_id = service.id
        segment.price = service.price
        if segment.segment_type in PER_PERSON_SEGMENTS:
            segment.price = service.price * journey.travelers
        segment.currency = service.currency
        segment.is_cancelled = False
        segment.cancelled_at = None
        segment.cancellation_reason = None
        if service.transport:
            segment.departure_location_id = service.transport.departure_location_id
            segment.arrival_location_id = service.transport.arrival_location_id
            if service.transport.departure_time and service.transport.arrival_time:
                segment.departure_time = service.transport.departure_time
                segment.arrival_time = service.transport.arrival_time
            if service.duration_minutes:
                segment.duration = service.duration_minutes

        if not any(s.is_cancelled for s in journey.segments):
            journey.status = JourneyStatus.CONFIRMED
            logger.info("Journey %s back to CONFIRMED, all segments replaced", journey.id)
        self._touch(journey)
        return self.to_schema(journey)

    def auto_archive_past_journeys(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now()
        cutoff = datetime.combine(now.date() - timedelta(days=1), time.max)
        archived = 0
        for journey in self.repository.list_journeys():
            if journey.status not in (JourneyStatus.CONFIRMED, JourneyStatus.IN_PROGRESS):
                continue
            if datetime.combine(journey.end_date, time()) < cutoff:
                journey.status = JourneyStatus.COMPLETED
                journey.updated_at = now
                archived += 1
        if archived:
            logger.info("Auto-archived %d past journeys", archived)
        return archived

    def recalculate_status(self, journey_id: str, user_id: str) -> JourneySchema:
        journey = self._owned_journey(journey_id, user_id)
        self._apply_recalculated_status(journey)
        return self.to_schema(journey)

    def _apply_recalculated_status(self, journey: Journey) -> bool:
        booked = [
            (s, self.repository.get_booking(s.booking_id)) for s in journey.segments if s.booking_id
        ]
        booked = [(s, b) for s, b in booked if b]
        if not booked:
            return False

        all_cancelled = all(b.status == BookingStatus.CANCELLED for _, b in booked)
        has_active = any(b.status in ACTIVE_BOOKING_STATUSES for _, b in booked)
        supplier_cancelled = any(
            s.is_cancelled and b.status == BookingStatus.CANCELLED for s, b in booked
        )

        status = journey.status
        if all_cancelled:
            status = JourneyStatus.CANCELLED
        elif supplier_cancelled and has_active:
            status = JourneyStatus.PENDING_CHANGES
        elif not has_active and journey.status == JourneyStatus.CONFIRMED:
            status = JourneyStatus.CANCELLED

        if status == journey.status:
            return False
        logger.info("Journey %s status %s -> %s", journey.id, journey.status.value, status.value)
        journey.status = status
        self._touch(journey)
        return True

    def recalculate_all(self, user_id: str) -> RecalculateAllResponse:
        journeys = self.repository.journeys_for_user(user_id)
        updated = sum(1 for j in journeys if self._apply_recalculated_status(j))
        logger.info("Recalculated %d journeys for user %s, updated %d", len(journeys), user_id, updated)
        return RecalculateAllResponse(
            updated=updated, journeys=[self.to_schema(j) for j in journeys]
        )

    # mapping

    def _brief(self, location_id: Optional[str]) -> Optional[LocationBrief]:
        location = self.repository.get_location(location_id) if location_id else None
        return LocationBrief.from_domain(location) if location else None

    def _segment_schema(self, segment: JourneySegment) -> SegmentSchema:
        service = self.repository.get_service(segment.service_id) if segment.service_id else None
        return SegmentSchema.from_domain(
            segment,
            departure_location=self._brief(segment.departure_location_id),
            arrival_location=self._brief(segment.arrival_location_id),
            service_name=service.name if service else None,
        )

    def to_schema(self, journey: Journey) -> JourneySchema:
        return JourneySchema(
            id=journey.id,
            user_id=journey.user_id,
            status=journey.status,
            name=journey.name,
            origin_location_id=journey.origin_location_id,
            dest_location_id=journey.dest_location_id,
            start_date=journey.start_date,
            end_date=journey.end_date,
            total_price=journey.total_price,
            currency=journey.currency,
            travelers=journey.travelers,
            preferences=dict(journey.preferences),
            optimized_route=journey.optimized_route,
            segments=[
                self._segment_schema(s)
                for s in sorted(journey.segments, key=lambda s: s.segment_order)
            ],
            origin_location=self._brief(journey.origin_location_id),
            dest_location=self._brief(journey.dest_location_id),
            created_at=journey.created_at,
            updated_at=journey.updated_at,
        )
