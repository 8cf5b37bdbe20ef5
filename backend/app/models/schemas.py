from datetime import date, datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator

from app.models.domain import (
    AccommodationDetails,
    AccommodationType,
    AlertType,
    Booking,
    BookingItem,
    BookingStatus,
    BudgetLevel,
    CrowdLevel,
    Event,
    GuestReviewTag,
    InteractionType,
    JourneySegment,
    JourneyStatus,
    Location,
    LocationType,
    Notification,
    NotificationType,
    Payment,
    PaymentStatus,
    PriceAlert,
    PricingSuggestion,
    Review,
    ReviewTag,
    ReviewType,
    SegmentType,
    Sensor,
    SensorType,
    Service,
    ServiceStatus,
    ServiceType,
    TourDetails,
    TransportDetails,
    TransportType,
    UserPreferences,
)


# Catalogue


class LocationBrief(BaseModel):
    id: str
    name: str
    type: LocationType
    latitude: float
    longitude: float

    @classmethod
    def from_domain(cls, obj: Location) -> "LocationBrief":
        return cls(
            id=obj.id,
            name=obj.name,
            type=obj.type,
            latitude=obj.latitude,
            longitude=obj.longitude,
        )


class LocationCreate(BaseModel):
    name: str = Field(min_length=1)
    type: LocationType
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    parent_id: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None


class LocationSchema(LocationBrief):
    slug: str
    parent_id: Optional[str] = None
    description: Optional[str] = None
    is_active: bool

    @classmethod
    def from_domain(cls, obj: Location) -> "LocationSchema":
        return cls(
            id=obj.id,
            name=obj.name,
            slug=obj.slug,
            type=obj.type,
            latitude=obj.latitude,
            longitude=obj.longitude,
            parent_id=obj.parent_id,
            description=obj.description,
            is_active=obj.is_active,
        )


class TransportDetailsSchema(BaseModel):
    transport_type: TransportType
    departure_location_id: str
    arrival_location_id: str
    vehicle_type: Optional[str] = None
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None

    def to_domain(self) -> TransportDetails:
        return TransportDetails(**self.model_dump())


class AccommodationDetailsSchema(BaseModel):
    accommodation_type: AccommodationType
    max_guests: int = Field(ge=1)
    check_in_time: str = "14:00"
    check_out_time: str = "10:00"

    def to_domain(self) -> AccommodationDetails:
        return AccommodationDetails(**self.model_dump())


class TourDetailsSchema(BaseModel):
    meeting_point: Optional[str] = None
    languages: List[str] = Field(default_factory=list)

    def to_domain(self) -> TourDetails:
        return TourDetails(**self.model_dump())


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    type: ServiceType
    price: float = Field(ge=0)
    location_id: Optional[str] = None
    currency: str = "EUR"
    description: str = ""
    capacity: Optional[int] = Field(default=None, ge=1)
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    tags: List[str] = Field(default_factory=list)
    transport: Optional[TransportDetailsSchema] = None
    accommodation: Optional[AccommodationDetailsSchema] = None
    tour: Optional[TourDetailsSchema] = None

    @model_validator(mode="after")
    def check_details(self) -> "ServiceCreate":
        if self.type == ServiceType.TRANSPORT and self.transport is None:
            raise ValueError("transport details are required for TRANSPORT services")
        if self.type == ServiceType.ACCOMMODATION and self.accommodation is None:
            raise ValueError("accommodation details are required for ACCOMMODATION services")
        return self


class ServiceFilter(BaseModel):
    type: Optional[ServiceType] = None
    location_id: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    tags: List[str] = Field(default_factory=list)
    search: Optional[str] = None
    sort_by: str = Field(default="price", pattern="^(price|name|created_at)$")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class ServiceSchema(BaseModel):
    id: str
    supplier_id: str
    name: str
    type: ServiceType
    price: float
    currency: str
    location_id: Optional[str] = None
    description: str
    capacity: Optional[int] = None
    duration_minutes: Optional[int] = None
    tags: List[str]
    status: ServiceStatus
    is_active: bool
    transport: Optional[TransportDetailsSchema] = None
    accommodation: Optional[AccommodationDetailsSchema] = None
    tour: Optional[TourDetailsSchema] = None

    @classmethod
    def from_domain(cls, obj: Service) -> "ServiceSchema":
        return cls(
            id=obj.id,
            supplier_id=obj.supplier_id,
            name=obj.name,
            type=obj.type,
            price=obj.price,
            currency=obj.currency,
            location_id=obj.location_id,
            description=obj.description,
            capacity=obj.capacity,
            duration_minutes=obj.duration_minutes,
            tags=list(obj.tags),
            status=obj.status,
            is_active=obj.is_active,
            transport=TransportDetailsSchema(**vars(obj.transport)) if obj.transport else None,
            accommodation=(
                AccommodationDetailsSchema(**vars(obj.accommodation)) if obj.accommodation else None
            ),
            tour=TourDetailsSchema(**vars(obj.tour)) if obj.tour else None,
        )


class ServiceListResponse(BaseModel):
    services: List[ServiceSchema]
    total: int
    page: int
    limit: int


class AvailabilitySchema(BaseModel):
    service_id: str
    service_name: str
    date: date
    available: bool
    requested_quantity: int
    available_capacity: Optional[int] = None
    reason: Optional[str] = None


class EventCreate(BaseModel):
    location_id: str
    name: str = Field(min_length=1)
    start_date: datetime
    end_date: datetime
    description: str = ""

    @model_validator(mode="after")
    def check_dates(self) -> "EventCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventSchema(BaseModel):
    id: str
    location_id: str
    name: str
    start_date: datetime
    end_date: datetime
    description: str
    is_active: bool

    @classmethod
    def from_domain(cls, obj: Event) -> "EventSchema":
        return cls(
            id=obj.id,
            location_id=obj.location_id,
            name=obj.name,
            start_date=obj.start_date,
            end_date=obj.end_date,
            description=obj.description,
            is_active=obj.is_active,
        )


# Bookings & payments


class BookingItemCreate(BaseModel):
    service_id: str
    quantity: int = Field(default=1, ge=1)
    metadata: Dict[str, object] = Field(default_factory=dict)


class BookingCreate(BaseModel):
    service_date: datetime
    items: List[BookingItemCreate] = Field(min_length=1)
    notes: Optional[str] = None


class CancelBookingRequest(BaseModel):
    cancellation_reason: Optional[str] = None


class BookingItemSchema(BaseModel):
    service_id: str
    quantity: int
    unit_price: float
    total_price: float
    metadata: Dict[str, object] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, obj: BookingItem) -> "BookingItemSchema":
        return cls(
            service_id=obj.service_id,
            quantity=obj.quantity,
            unit_price=obj.unit_price,
            total_price=obj.total_price,
            metadata=dict(obj.metadata),
        )


class BookingSchema(BaseModel):
    id: str
    reference: str
    user_id: str
    supplier_id: str
    status: BookingStatus
    total_amount: float
    commission: float
    currency: str
    service_date: datetime
    items: List[BookingItemSchema]
    package_booking_id: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, obj: Booking) -> "BookingSchema":
        return cls(
            id=obj.id,
            reference=obj.reference,
            user_id=obj.user_id,
            supplier_id=obj.supplier_id,
            status=obj.status,
            total_amount=obj.total_amount,
            commission=obj.commission,
            currency=obj.currency,
            service_date=obj.service_date,
            items=[BookingItemSchema.from_domain(i) for i in obj.items],
            package_booking_id=obj.package_booking_id,
            notes=obj.notes,
            cancellation_reason=obj.cancellation_reason,
            created_at=obj.created_at,
        )


class BookingResponse(BaseModel):
    bookings: List[BookingSchema]


class BookingListResponse(BaseModel):
    bookings: List[BookingSchema]
    total: int


class PaymentIntentRequest(BaseModel):
    booking_id: str


class RefundRequest(BaseModel):
    reason: Optional[str] = None


class PaymentSchema(BaseModel):
    id: str
    booking_id: str
    amount: float
    currency: str
    status: PaymentStatus
    provider: str
    provider_reference: str
    client_secret: Optional[str] = None
    refund_reason: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, obj: Payment) -> "PaymentSchema":
        return cls(
            id=obj.id,
            booking_id=obj.booking_id,
            amount=obj.amount,
            currency=obj.currency,
            status=obj.status,
            provider=obj.provider,
            provider_reference=obj.provider_reference,
            client_secret=obj.client_secret,
            refund_reason=obj.refund_reason,
            created_at=obj.created_at,
            completed_at=obj.completed_at,
        )


# Reviews


class ReviewCreate(BaseModel):
    booking_id: str
    would_recommend: bool
    tag: ReviewTag
    comment: Optional[str] = Field(default=None, max_length=2000)


class GuestReviewCreate(BaseModel):
    booking_id: str
    would_host_again: bool
    tag: GuestReviewTag


class ReviewSchema(BaseModel):
    id: str
    booking_id: str
    user_id: str
    supplier_id: str
    service_id: Optional[str] = None
    review_type: ReviewType = ReviewType.GUEST_TO_SUPPLIER
    would_recommend: bool
    tag: Union[ReviewTag, GuestReviewTag]
    comment: Optional[str] = None
    publish_at: datetime
    is_published: bool

    @classmethod
    def from_domain(cls, obj: Review) -> "ReviewSchema":
        return cls(
            id=obj.id,
            booking_id=obj.booking_id,
            user_id=obj.user_id,
            supplier_id=obj.supplier_id,
            service_id=obj.service_id,
            review_type=obj.review_type,
            would_recommend=obj.would_recommend,
            tag=obj.tag,
            comment=obj.comment,
            publish_at=obj.publish_at,
            is_published=obj.is_published,
        )


class TagCount(BaseModel):
    tag: ReviewTag
    count: int


class TrustScoreSchema(BaseModel):
    supplier_id: str
    trust_score: Optional[int] = None
    total_reviews: int
    positive_reviews: int
    negative_reviews: int
    top_tags: List[TagCount] = Field(default_factory=list)
    quality: Optional[str] = None
    message: Optional[str] = None


class GuestTagCount(BaseModel):
    tag: GuestReviewTag
    count: int


class GuestTrustScoreSchema(BaseModel):
    user_id: str
    trust_score: Optional[int] = None
    total_reviews: int
    positive_reviews: int = 0
    negative_reviews: int = 0
    top_tags: List[GuestTagCount] = Field(default_factory=list)
    quality: Optional[str] = None
    message: Optional[str] = None


class ReviewTagsSchema(BaseModel):
    service_tags: List[ReviewTag]
    guest_tags: List[GuestReviewTag]


# Crowd intelligence


class DataSourceScores(BaseModel):
    google_live: Optional[float] = None
    google_historic: Optional[float] = None
    instagram: Optional[float] = None
    tiktok: Optional[float] = None
    weather: Optional[float] = None
    event: Optional[float] = None
    sensor: Optional[float] = None


class CrowdDataResponse(BaseModel):
    location_id: str
    location_name: str
    crowd_index: float
    crowd_level: CrowdLevel
    color: str
    timestamp: datetime
    data_source_scores: DataSourceScores
    temperature: Optional[float] = None
    weather_condition: Optional[str] = None
    active_events: List[str] = Field(default_factory=list)
    is_prediction: bool = False
    confidence: Optional[float] = None


class HeatmapPoint(BaseModel):
    location_id: str
    name: str
    type: LocationType
    latitude: float
    longitude: float
    crowd_index: float
    crowd_level: CrowdLevel
    color: str


class HeatmapResponse(BaseModel):
    points: List[HeatmapPoint]
    timestamp: datetime
    total_locations: int


class HourlyPrediction(BaseModel):
    hour: int
    predicted_index: int
    predicted_level: CrowdLevel
    confidence: float
    is_best_time: bool


class WeatherSummary(BaseModel):
    temperature: float
    condition: str


class PredictionResponse(BaseModel):
    location_id: str
    location_name: str
    date: date
    hourly_predictions: List[HourlyPrediction]
    best_time_hour: Optional[int] = None
    weather_forecast: Optional[WeatherSummary] = None
    upcoming_events: List[str] = Field(default_factory=list)


class SensorCreate(BaseModel):
    location_id: str
    sensor_type: str
    name: str = Field(min_length=1)
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    threshold: Optional[int] = Field(default=None, ge=0)
    placement: Optional[str] = None


class SensorUpdate(BaseModel):
    name: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    threshold: Optional[int] = Field(default=None, ge=0)
    calibration_factor: Optional[float] = Field(default=None, gt=0)
    is_active: Optional[bool] = None
    placement: Optional[str] = None


class SensorReadingCreate(BaseModel):
    count: int = Field(ge=0)
    raw_value: Optional[float] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    timestamp: Optional[datetime] = None


class SensorReadingSchema(BaseModel):
    count: int
    timestamp: datetime


class ReadingAck(BaseModel):
    reading_id: str
    calibrated_count: int
    timestamp: datetime


class SensorSchema(BaseModel):
    id: str
    location_id: str
    sensor_type: SensorType
    name: str
    capacity: Optional[int] = None
    threshold: Optional[int] = None
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    placement: Optional[str] = None
    calibration_factor: float
    last_calibrated: Optional[datetime] = None
    is_active: bool
    readings: List[SensorReadingSchema] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, obj: Sensor, readings=()) -> "SensorSchema":
        return cls(
            id=obj.id,
            location_id=obj.location_id,
            sensor_type=obj.sensor_type,
            name=obj.name,
            capacity=obj.capacity,
            threshold=obj.threshold,
            mac_address=obj.mac_address,
            ip_address=obj.ip_address,
            placement=obj.placement,
            calibration_factor=obj.calibration_factor,
            last_calibrated=obj.last_calibrated,
            is_active=obj.is_active,
            readings=[SensorReadingSchema(count=r.count, timestamp=r.timestamp) for r in readings],
        )


class SensorStats(BaseModel):
    sensor_id: str
    sensor_name: str
    period: str
    total_readings: int
    average_count: int
    max_count: int
    min_count: int
    utilization_rate: Optional[float] = None
    readings: List[SensorReadingSchema]


# Recommendations & pricing


class PreferencesSchema(BaseModel):
    travel_styles: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    min_budget: Optional[float] = Field(default=None, ge=0)
    max_budget: Optional[float] = Field(default=None, ge=0)
    home_location_id: Optional[str] = None

    @classmethod
    def from_domain(cls, obj: UserPreferences) -> "PreferencesSchema":
        return cls(
            travel_styles=list(obj.travel_styles),
            interests=list(obj.interests),
            min_budget=obj.min_budget,
            max_budget=obj.max_budget,
            home_location_id=obj.home_location_id,
        )


class InteractionCreate(BaseModel):
    service_id: str
    interaction_type: InteractionType
    search_query: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)


class RecommendationSchema(BaseModel):
    service_id: str
    service_name: str
    service_type: ServiceType
    score: float
    reasoning: str
    price: float
    currency: str


class PricingSuggestionSchema(BaseModel):
    id: str
    service_id: str
    start_date: datetime
    end_date: datetime
    base_price: float
    demand_multiplier: float
    seasonal_multiplier: float
    crowd_multiplier: float
    suggested_price: float
    min_price: float
    max_price: float
    confidence: float
    is_active: bool
    applied_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, obj: PricingSuggestion) -> "PricingSuggestionSchema":
        return cls(
            id=obj.id,
            service_id=obj.service_id,
            start_date=obj.start_date,
            end_date=obj.end_date,
            base_price=obj.base_price,
            demand_multiplier=obj.demand_multiplier,
            seasonal_multiplier=obj.seasonal_multiplier,
            crowd_multiplier=obj.crowd_multiplier,
            suggested_price=obj.suggested_price,
            min_price=obj.min_price,
            max_price=obj.max_price,
            confidence=obj.confidence,
            is_active=obj.is_active,
            applied_at=obj.applied_at,
        )


# Journeys


class JourneyPreferences(BaseModel):
    budget: BudgetLevel = BudgetLevel.STANDARD
    interests: List[str] = Field(default_factory=list)


class PlanJourneyRequest(BaseModel):
    origin_location_id: str
    dest_location_id: str
    start_date: date
    end_date: date
    travelers: int = Field(default=1, ge=1, le=50)
    name: Optional[str] = None
    preferences: JourneyPreferences = Field(default_factory=JourneyPreferences)
    auto_plan: bool = False


class UpdateJourneyRequest(BaseModel):
    name: Optional[str] = None
    status: Optional[JourneyStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    travelers: Optional[int] = Field(default=None, ge=1, le=50)


class AddSegmentRequest(BaseModel):
    segment_type: SegmentType
    departure_time: datetime
    arrival_time: datetime
    service_id: Optional[str] = None
    departure_location_id: Optional[str] = None
    arrival_location_id: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    insert_after_order: Optional[int] = Field(default=None, ge=1)
    day_number: Optional[int] = Field(default=None, ge=1)
    time_of_day: Optional[str] = None
    metadata: Dict[str, object] = Field(default_factory=dict)


class UpdateSegmentRequest(BaseModel):
    service_id: Optional[str] = None
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    departure_location_id: Optional[str] = None
    arrival_location_id: Optional[str] = None
    notes: Optional[str] = None


class BookJourneyRequest(BaseModel):
    payment_method_id: Optional[str] = None
    notes: Optional[str] = None
    guest_details: Dict[str, object] = Field(default_factory=dict)


class ReplaceSegmentRequest(BaseModel):
    service_id: str


class SegmentSchema(BaseModel):
    id: str
    journey_id: str
    segment_type: SegmentType
    segment_order: int
    service_id: Optional[str] = None
    booking_id: Optional[str] = None
    departure_location_id: Optional[str] = None
    arrival_location_id: Optional[str] = None
    departure_time: datetime
    arrival_time: datetime
    duration: int
    price: float
    currency: str
    is_booked: bool
    is_confirmed: bool
    is_cancelled: bool
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None
    metadata: Dict[str, object] = Field(default_factory=dict)
    departure_location: Optional[LocationBrief] = None
    arrival_location: Optional[LocationBrief] = None
    service_name: Optional[str] = None

    @classmethod
    def from_domain(cls, obj: JourneySegment, **extra) -> "SegmentSchema":
        return cls(
            id=obj.id,
            journey_id=obj.journey_id,
            segment_type=obj.segment_type,
            segment_order=obj.segment_order,
            service_id=obj.service_id,
            booking_id=obj.booking_id,
            departure_location_id=obj.departure_location_id,
            arrival_location_id=obj.arrival_location_id,
            departure_time=obj.departure_time,
            arrival_time=obj.arrival_time,
            duration=obj.duration,
            price=obj.price,
            currency=obj.currency,
            is_booked=obj.is_booked,
            is_confirmed=obj.is_confirmed,
            is_cancelled=obj.is_cancelled,
            cancelled_at=obj.cancelled_at,
            cancellation_reason=obj.cancellation_reason,
            notes=obj.notes,
            metadata=dict(obj.metadata),
            **extra,
        )


class JourneySchema(BaseModel):
    id: str
    user_id: str
    status: JourneyStatus
    name: str
    origin_location_id: str
    dest_location_id: str
    start_date: date
    end_date: date
    total_price: float
    currency: str
    travelers: int
    preferences: Dict[str, object] = Field(default_factory=dict)
    optimized_route: Optional[Dict[str, object]] = None
    segments: List[SegmentSchema]
    origin_location: Optional[LocationBrief] = None
    dest_location: Optional[LocationBrief] = None
    created_at: datetime
    updated_at: datetime


class JourneyListResponse(BaseModel):
    journeys: List[JourneySchema]
    total: int
    page: int
    limit: int


class RecalculateAllResponse(BaseModel):
    updated: int
    journeys: List[JourneySchema]


# Notifications


class NotificationSchema(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    action_url: Optional[str] = None
    metadata: Dict[str, object] = Field(default_factory=dict)
    is_read: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, obj: Notification) -> "NotificationSchema":
        return cls(
            id=obj.id,
            type=obj.type,
            title=obj.title,
            message=obj.message,
            action_url=obj.action_url,
            metadata=dict(obj.metadata),
            is_read=obj.is_read,
            created_at=obj.created_at,
        )


class NotificationListResponse(BaseModel):
    notifications: List[NotificationSchema]
    unread_count: int


# Price alerts & flexible dates


class PriceAlertCreate(BaseModel):
    service_id: str
    alert_type: AlertType = AlertType.PRICE_DROP
    target_price: Optional[float] = Field(default=None, ge=0)
    percentage: Optional[int] = Field(default=None, ge=1, le=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    guests: Optional[int] = Field(default=None, ge=1)


class PriceAlertSchema(BaseModel):
    id: str
    service_id: str
    service_name: str
    alert_type: AlertType
    target_price: Optional[float] = None
    percentage: Optional[int] = None
    current_price: float
    is_active: bool
    is_triggered: bool
    triggered_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, obj: PriceAlert, service: Service) -> "PriceAlertSchema":
        return cls(
            id=obj.id,
            service_id=obj.service_id,
            service_name=service.name,
            alert_type=obj.alert_type,
            target_price=obj.target_price,
            percentage=obj.percentage,
            current_price=service.price,
            is_active=obj.is_active,
            is_triggered=obj.is_triggered,
            triggered_at=obj.triggered_at,
            created_at=obj.created_at,
        )


class FlexibleDateSearch(BaseModel):
    service_id: str
    start_date: date
    end_date: date
    guests: int = Field(default=1, ge=1)
    flex_days: int = Field(default=0, ge=0, le=7)


class FlexibleDateResult(BaseModel):
    date: date
    price: float
    available: bool
    is_cheapest: bool = False
    price_difference: float = 0.0
    crowd_level: Optional[CrowdLevel] = None


class FlexibleDateSearchResponse(BaseModel):
    service_id: str
    service_name: str
    start_date: date
    end_date: date
    guests: int
    results: List[FlexibleDateResult]
    cheapest_price: float
    highest_price: float
    average_price: float
    best_value_dates: List[date]
