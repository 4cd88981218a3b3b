"""Booking request schemas.

Each request enumerates every option it recognizes together with its default,
so an omitted field and an explicit ``False`` are never confused.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.booking import (
    BookingStatus,
    CustomsDocument,
    Duties,
    LocationDetails,
    TransportBooking,
    VehicleDetails,
)
from ..timeutils import as_utc


class InitialPricing(BaseModel):
    quote_amount: float = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)

    @field_validator("currency", mode="after")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()


class BookingOptions(BaseModel):
    expedited: bool = False
    request_insurance: bool = False
    insurance_option: Optional[str] = Field(
        default=None,
        description="Name of one of the provider's insurance options.",
    )
    customs_handling: bool = False
    door_to_door: bool = False
    special_instructions: Optional[str] = None


class BookingCreateRequest(BaseModel):
    vehicle_id: str
    buyer_id: str
    seller_id: str
    provider_id: str
    pickup_details: LocationDetails
    delivery_details: LocationDetails
    vehicle_details: VehicleDetails
    pricing: InitialPricing
    auction_id: Optional[str] = None
    options: BookingOptions = Field(default_factory=BookingOptions)
    created_by: Optional[str] = Field(default=None, description="Defaults to the buyer.")

    @field_validator("pickup_details", "delivery_details", mode="after")
    @classmethod
    def _normalize_country(cls, value: LocationDetails) -> LocationDetails:
        return replace(
            value,
            country=value.country.strip().upper(),
            scheduled_date=as_utc(value.scheduled_date),
        )


class StatusUpdateRequest(BaseModel):
    status: BookingStatus
    notes: Optional[str] = None
    location: Optional[str] = None


class CustomsClearanceRequest(BaseModel):
    clearance_date: datetime
    customs_office: str
    customs_agent: Optional[str] = None
    duties: Optional[Duties] = None
    documents: List[CustomsDocument] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("clearance_date", mode="after")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class StatusUpdate(BaseModel):
    status: str
    location: Optional[str] = None
    notes: Optional[str] = None


class TrackingUpdateRequest(BaseModel):
    """Partial tracking update; only fields present in the payload are applied."""

    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    current_location: Optional[str] = None
    current_status: Optional[str] = None
    status_update: Optional[StatusUpdate] = None

    @field_validator("estimated_delivery", mode="after")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    def supplied_fields(self) -> dict:
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "status_update"
        }


class DocumentRequest(BaseModel):
    type: str = Field(..., description="e.g. bill_of_lading, cmr, condition_report")
    filename: str
    url: str


class NoteRequest(BaseModel):
    author: str
    content: str = Field(..., min_length=1)
    is_public: bool = True


class BookingFilters(BaseModel):
    vehicle_id: Optional[str] = None
    auction_id: Optional[str] = None
    buyer_id: Optional[str] = None
    seller_id: Optional[str] = None
    provider_id: Optional[str] = None
    statuses: List[BookingStatus] = Field(default_factory=list)
    pickup_country: Optional[str] = None
    delivery_country: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    scheduled_after: Optional[datetime] = None
    scheduled_before: Optional[datetime] = None

    @field_validator("pickup_country", "delivery_country", mode="after")
    @classmethod
    def _upper(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value

    @field_validator("created_after", "created_before", "scheduled_after", "scheduled_before", mode="after")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


SortField = Literal["created_at", "updated_at", "status"]
SortOrder = Literal["asc", "desc"]


class BookingListResponse(BaseModel):
    bookings: List[TransportBooking]
    total: int
    page: int
    limit: int
    total_pages: int
