"""Booking aggregate and its nested value objects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .domain import RunningCondition


class BookingStatus(str, Enum):
    DRAFT = "draft"
    QUOTE_REQUESTED = "quote_requested"
    QUOTED = "quoted"
    BOOKED = "booked"
    PICKUP_SCHEDULED = "pickup_scheduled"
    IN_TRANSIT = "in_transit"
    CUSTOMS_CLEARANCE = "customs_clearance"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({BookingStatus.DELIVERED, BookingStatus.CANCELLED, BookingStatus.FAILED})


class CustomsStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ISSUES = "issues"


class WaypointType(str, Enum):
    PICKUP = "pickup"
    CUSTOMS = "customs"
    HANDOVER = "handover"
    STORAGE = "storage"
    INSPECTION = "inspection"
    DELIVERY = "delivery"


class DutyPayer(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    PLATFORM = "platform"
    SHIPPING_PROVIDER = "shipping_provider"


class DutyPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    WAIVED = "waived"


@dataclass(frozen=True, slots=True)
class LocationDetails:
    address: str
    city: str
    country: str
    contact_name: str
    contact_phone: str
    postal_code: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    instructions: Optional[str] = None
    access_restrictions: Optional[str] = None


@dataclass(frozen=True, slots=True)
class VehicleDimensions:
    """Vehicle size in centimetres and weight in kilograms."""

    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    weight: Optional[float] = None


@dataclass(frozen=True, slots=True)
class VehicleDetails:
    make: str
    model: str
    year: int
    vin: str
    running_condition: RunningCondition = RunningCondition.RUNNING
    dimensions: Optional[VehicleDimensions] = None
    special_handling_needed: bool = False
    special_handling_notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class BorderCrossing:
    from_country: str
    to_country: str
    estimated_crossing_time: Optional[float] = None


@dataclass(frozen=True, slots=True)
class Waypoint:
    type: WaypointType
    location: str
    scheduled_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RouteDetails:
    distance: Optional[float] = None
    estimated_duration: Optional[float] = None
    border_crossings: tuple[BorderCrossing, ...] = ()
    waypoints: tuple[Waypoint, ...] = ()


@dataclass(frozen=True, slots=True)
class PriceLine:
    description: str
    amount: float


@dataclass(frozen=True, slots=True)
class Pricing:
    quote_amount: float
    currency: str
    actual_amount: Optional[float] = None
    breakdown: tuple[PriceLine, ...] = ()
    is_paid: bool = False
    payment_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """One immutable event of the tracking ledger."""

    status: str
    timestamp: datetime
    location: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Tracking:
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    current_location: Optional[str] = None
    current_status: Optional[str] = None
    status_history: tuple[StatusEntry, ...] = ()


@dataclass(frozen=True, slots=True)
class CustomsDocument:
    type: str
    reference_number: Optional[str] = None
    issue_date: Optional[datetime] = None
    document_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Duties:
    amount: float
    currency: str
    paid_by: DutyPayer
    payment_status: DutyPaymentStatus = DutyPaymentStatus.PENDING


@dataclass(frozen=True, slots=True)
class CustomsClearance:
    required: bool
    status: CustomsStatus = CustomsStatus.NOT_STARTED
    clearance_date: Optional[datetime] = None
    customs_office: Optional[str] = None
    customs_agent: Optional[str] = None
    documents: tuple[CustomsDocument, ...] = ()
    duties: Optional[Duties] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Insurance:
    is_insured: bool = False
    provider: Optional[str] = None
    coverage_amount: Optional[float] = None
    currency: Optional[str] = None
    policy_number: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    premium: Optional[float] = None
    documents: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BookingDocument:
    type: str
    filename: str
    url: str
    upload_date: datetime


@dataclass(frozen=True, slots=True)
class BookingNote:
    author: str
    date: datetime
    content: str
    is_public: bool = True


@dataclass(frozen=True, slots=True)
class TransportBooking:
    """Aggregate root of the booking lifecycle.

    Instances are immutable; lifecycle operations return a new value and the
    repository persists it with ``version`` bumped by one.
    """

    booking_id: str
    vehicle_id: str
    buyer_id: str
    seller_id: str
    provider_id: str
    status: BookingStatus
    pickup_details: LocationDetails
    delivery_details: LocationDetails
    vehicle_details: VehicleDetails
    pricing: Pricing
    tracking: Tracking
    created_by: str
    created_at: datetime
    updated_at: datetime
    auction_id: Optional[str] = None
    route_details: Optional[RouteDetails] = None
    customs_clearance: Optional[CustomsClearance] = None
    insurance: Optional[Insurance] = None
    documents: tuple[BookingDocument, ...] = ()
    notes: tuple[BookingNote, ...] = ()
    version: int = 0

    @property
    def is_cross_border(self) -> bool:
        return self.pickup_details.country != self.delivery_details.country


@dataclass(frozen=True, slots=True)
class Transition:
    """Result of a lifecycle operation: the new booking and the ledger entry it appended."""

    booking: TransportBooking
    entry: Optional[StatusEntry] = None


@dataclass(frozen=True, slots=True)
class BookingPage:
    bookings: tuple[TransportBooking, ...]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0
