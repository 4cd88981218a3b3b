"""Quote request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.booking import VehicleDimensions
from ..models.domain import RunningCondition


class QuoteRequest(BaseModel):
    pickup_country: str = Field(..., min_length=2, max_length=3)
    pickup_city: str
    delivery_country: str = Field(..., min_length=2, max_length=3)
    delivery_city: str
    vehicle_type: str = "sedan"
    make: str
    model: str
    year: int = Field(..., ge=1886)
    dimensions: Optional[VehicleDimensions] = None
    running_condition: RunningCondition = RunningCondition.RUNNING
    size_class: Optional[str] = Field(default=None, description="Optional weight/size class of the vehicle.")
    currency: Optional[str] = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="Requested quote currency. Defaults to the platform base currency.",
    )

    @field_validator("pickup_country", "delivery_country", "currency", mode="after")
    @classmethod
    def _upper(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value

    @property
    def is_domestic(self) -> bool:
        return self.pickup_country == self.delivery_country


class InsuranceQuoteModel(BaseModel):
    name: str
    coverage: float
    price: float
    currency: str


class AdditionalServiceModel(BaseModel):
    name: str
    description: str
    price: float


class QuoteModel(BaseModel):
    provider_id: str
    provider_name: str
    price: float
    currency: str
    estimated_days: int
    insurance_options: List[InsuranceQuoteModel]
    additional_services: List[AdditionalServiceModel]
    valid_until: datetime


class QuoteResponse(BaseModel):
    route: str
    currency: str
    quotes: List[QuoteModel]
