from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Union
from uuid import uuid4


def new_id() -> str:
    return str(uuid4())


class UserRole(str, Enum):
    TOURIST = "TOURIST"
    SUPPLIER = "SUPPLIER"
    ADMIN = "ADMIN"


class LocationType(str, Enum):
    ISLAND = "ISLAND"
    CITY = "CITY"
    BEACH = "BEACH"
    RESTAURANT = "RESTAURANT"
    NIGHTLIFE = "NIGHTLIFE"
    ATTRACTION = "ATTRACTION"
    PORT = "PORT"
    AIRPORT = "AIRPORT"


class ServiceType(str, Enum):
    TRANSPORT = "TRANSPORT"
    ACCOMMODATION = "ACCOMMODATION"
    TOUR = "TOUR"
    ACTIVITY = "ACTIVITY"
    EVENT_TICKET = "EVENT_TICKET"


class ServiceStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class TransportType(str, Enum):
    FERRY = "FERRY"
    SPEEDBOAT = "SPEEDBOAT"
    TAXI = "TAXI"
    BUS = "BUS"
    PRIVATE_TRANSFER = "PRIVATE_TRANSFER"


class AccommodationType(str, Enum):
    VILLA = "VILLA"
    APARTMENT = "APARTMENT"
    HOTEL = "HOTEL"
    GUESTHOUSE = "GUESTHOUSE"
    HOSTEL = "HOSTEL"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    REFUNDED = "REFUNDED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class CrowdLevel(str, Enum):
    EMPTY = "EMPTY"
    QUIET = "QUIET"
    MODERATE = "MODERATE"
    BUSY = "BUSY"
    VERY_BUSY = "VERY_BUSY"


class SensorType(str, Enum):
    wifi = "wifi"
    ble = "ble"
    camera = "camera"


class JourneyStatus(str, Enum):
    PLANNING = "PLANNING"
    READY = "READY"
    BOOKING = "BOOKING"
    CONFIRMED = "CONFIRMED"
    PENDING_CHANGES = "PENDING_CHANGES"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SegmentType(str, Enum):
    AIRPORT_TRANSFER = "AIRPORT_TRANSFER"
    FERRY = "FERRY"
    TRANSPORT = "TRANSPORT"
    ACCOMMODATION = "ACCOMMODATION"
    ACTIVITY = "ACTIVITY"
    TOUR = "TOUR"
    EVENT = "EVENT"


class InteractionType(str, Enum):
    view = "view"
    click = "click"
    like = "like"
    save = "save"
    book = "book"
    search = "search"


class BudgetLevel(str, Enum):
    BUDGET = "BUDGET"
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    LUXURY = "LUXURY"


class ReviewTag(str, Enum):
    SUPER_CLEAN = "SUPER_CLEAN"
    AMAZING_HOST = "AMAZING_HOST"
    GREAT_LOCATION = "GREAT_LOCATION"
    GOOD_VALUE = "GOOD_VALUE"
    QUIET_AREA = "QUIET_AREA"
    PERFECT_FOR_FAMILIES = "PERFECT_FOR_FAMILIES"
    NOT_CLEAN = "NOT_CLEAN"
    POOR_COMMUNICATION = "POOR_COMMUNICATION"
    TOO_NOISY = "TOO_NOISY"
    BAD_LOCATION = "BAD_LOCATION"
    PRICE_TOO_HIGH = "PRICE_TOO_HIGH"


class GuestReviewTag(str, Enum):
    RESPECTFUL_GUEST = "Respectful guest"
    CLEAN_AND_TIDY = "Clean and tidy"
    GOOD_COMMUNICATION = "Good communication"
    FOLLOWED_RULES = "Followed rules"
    EASY_GUEST = "Easy guest"
    ON_TIME = "On time"
    DISRESPECTFUL = "Disrespectful"
    LEFT_MESS = "Left mess"
    POOR_COMMUNICATION = "Poor communication"
    BROKE_RULES = "Broke rules"
    DIFFICULT_GUEST = "Difficult guest"
    LATE_NO_SHOW = "Late/no show"
    DAMAGED_PROPERTY = "Damaged property"


class ReviewType(str, Enum):
    GUEST_TO_SUPPLIER = "GUEST_TO_SUPPLIER"
    SUPPLIER_TO_GUEST = "SUPPLIER_TO_GUEST"


class AlertType(str, Enum):
    PRICE_DROP = "PRICE_DROP"
    AVAILABILITY = "AVAILABILITY"
    SPECIAL_OFFER = "SPECIAL_OFFER"


class NotificationType(str, Enum):
    BOOKING_CONFIRMATION = "BOOKING_CONFIRMATION"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    REVIEW_REQUEST = "REVIEW_REQUEST"
    DENSITY_ALERT = "DENSITY_ALERT"
    PROMOTIONAL = "PROMOTIONAL"


@dataclass
class User:
    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole = UserRole.TOURIST


@dataclass
class Supplier:
    id: str
    user_id: str
    business_name: str
    commission_rate: float = 0.15


@dataclass
class Location:
    id: str
    name: str
    slug: str
    type: LocationType
    latitude: float
    longitude: float
    parent_id: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True


@dataclass
class TransportDetails:
    transport_type: TransportType
    departure_location_id: str
    arrival_location_id: str
    vehicle_type: Optional[str] = None
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None


@dataclass
class AccommodationDetails:
    accommodation_type: AccommodationType
    max_guests: int
    check_in_time: str = "14:00"
    check_out_time: str = "10:00"


@dataclass
class TourDetails:
    meeting_point: Optional[str] = None
    languages: List[str] = field(default_factory=list)


@dataclass
class Service:
    id: str
    supplier_id: str
    name: str
    type: ServiceType
    price: float
    location_id: Optional[str] = None
    currency: str = "EUR"
    description: str = ""
    capacity: Optional[int] = None
    duration_minutes: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    status: ServiceStatus = ServiceStatus.ACTIVE
    is_active: bool = True
    transport: Optional[TransportDetails] = None
    accommodation: Optional[AccommodationDetails] = None
    tour: Optional[TourDetails] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_bookable(self) -> bool:
        return self.is_active and self.status == ServiceStatus.ACTIVE


@dataclass
class BookingItem:
    service_id: str
    quantity: int
    unit_price: float
    total_price: float
    metadata: Dict[str, object] = field(default_factory=dict)


@dataclass
class Booking:
    id: str
    reference: str
    user_id: str
    supplier_id: str
    status: BookingStatus
    total_amount: float
    commission: float
    service_date: datetime
    items: List[BookingItem]
    currency: str = "EUR"
    package_booking_id: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class Payment:
    id: str
    booking_id: str
    user_id: str
    amount: float
    currency: str
    status: PaymentStatus
    provider: str
    provider_reference: str
    client_secret: Optional[str] = None
    refund_reason: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None


@dataclass
class Review:
    id: str
    booking_id: str
    user_id: str  # always the guest, whichever side wrote the review
    supplier_id: str
    service_id: Optional[str]
    would_recommend: bool
    tag: Union[ReviewTag, GuestReviewTag]
    comment: Optional[str]
    publish_at: datetime
    is_published: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    review_type: ReviewType = ReviewType.GUEST_TO_SUPPLIER


@dataclass
class Event:
    id: str
    location_id: str
    name: str
    start_date: datetime
    end_date: datetime
    description: str = ""
    is_active: bool = True


@dataclass
class Sensor:
    id: str
    location_id: str
    sensor_type: SensorType
    name: str
    capacity: Optional[int] = None
    threshold: Optional[int] = None
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    placement: Optional[str] = None
    calibration_factor: float = 1.0
    last_calibrated: Optional[datetime] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class SensorReading:
    id: str
    sensor_id: str
    count: int
    timestamp: datetime
    raw_value: Optional[float] = None
    confidence: Optional[float] = None


@dataclass
class CrowdDataPoint:
    id: str
    location_id: str
    crowd_index: float
    crowd_level: CrowdLevel
    timestamp: datetime
    google_live_score: Optional[float] = None
    google_historic_score: Optional[float] = None
    instagram_score: Optional[float] = None
    tiktok_score: Optional[float] = None
    weather_score: Optional[float] = None
    event_score: Optional[float] = None
    sensor_score: Optional[float] = None
    temperature: Optional[float] = None
    weather_condition: Optional[str] = None
    active_events: List[str] = field(default_factory=list)
    is_prediction: bool = False
    confidence: Optional[float] = None


@dataclass
class CrowdPrediction:
    id: str
    location_id: str
    prediction_for: datetime
    predicted_index: int
    predicted_level: CrowdLevel
    confidence: float
    historical_pattern: float
    weather_impact: float
    event_impact: float
    trend_impact: float
    is_best_time: bool = False
    generated_at: datetime = field(default_factory=datetime.now)


@dataclass
class SocialTrend:
    id: str
    location_id: str
    platform: str
    post_count: int
    hashtag_velocity: float
    engagement: float
    hashtags: List[str]
    hour_of_day: int
    day_of_week: str
    story_count: Optional[int] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class WeatherSnapshot:
    id: str
    location_id: str
    temperature: float
    feels_like: float
    humidity: float
    wind_speed: float
    cloud_cover: float
    precipitation: float
    weather_condition: str
    timestamp: datetime
    uv_index: Optional[float] = None
    wave_height: Optional[float] = None
    sea_temperature: Optional[float] = None


@dataclass
class UserPreferences:
    user_id: str
    travel_styles: List[str] = field(default_factory=list)
    interests: List[str] = field(default_factory=list)
    min_budget: Optional[float] = None
    max_budget: Optional[float] = None
    home_location_id: Optional[str] = None


@dataclass
class UserInteraction:
    id: str
    user_id: str
    service_id: str
    interaction_type: InteractionType
    created_at: datetime
    search_query: Optional[str] = None
    duration: Optional[int] = None


@dataclass
class RecommendationScore:
    user_id: str
    service_id: str
    preference_score: float
    behavior_score: float
    popularity_score: float
    seasonal_score: float
    proximity_score: float
    total_score: float
    reasoning: str
    computed_at: datetime
    expires_at: datetime


@dataclass
class PricingSuggestion:
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
    is_active: bool = False
    applied_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class JourneySegment:
    id: str
    journey_id: str
    segment_type: SegmentType
    segment_order: int
    departure_time: datetime
    arrival_time: datetime
    duration: int
    price: float
    currency: str = "EUR"
    service_id: Optional[str] = None
    booking_id: Optional[str] = None
    departure_location_id: Optional[str] = None
    arrival_location_id: Optional[str] = None
    is_booked: bool = False
    is_confirmed: bool = False
    is_cancelled: bool = False
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None
    metadata: Dict[str, object] = field(default_factory=dict)


@dataclass
class Journey:
    id: str
    user_id: str
    name: str
    origin_location_id: str
    dest_location_id: str
    start_date: date
    end_date: date
    travelers: int
    status: JourneyStatus = JourneyStatus.PLANNING
    total_price: float = 0.0
    currency: str = "EUR"
    preferences: Dict[str, object] = field(default_factory=dict)
    optimized_route: Optional[Dict[str, object]] = None
    segments: List[JourneySegment] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class Notification:
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    action_url: Optional[str] = None
    metadata: Dict[str, object] = field(default_factory=dict)
    is_read: bool = False
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class PriceAlert:
    id: str
    user_id: str
    service_id: str
    baseline_price: float  # service price when the alert was set, for percentage drops
    alert_type: AlertType = AlertType.PRICE_DROP
    target_price: Optional[float] = None
    percentage: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    guests: Optional[int] = None
    is_active: bool = True
    is_triggered: bool = False
    triggered_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)
