"""Domain models for providers, rates, currencies and customs records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class PriceUnit(str, Enum):
    PER_VEHICLE = "per_vehicle"
    PER_KM = "per_km"
    PER_MILE = "per_mile"


class FeeType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class RunningCondition(str, Enum):
    RUNNING = "running"
    NON_RUNNING = "non_running"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class BaseRate:
    """Provider price for one (origin, destination, vehicle type) tuple."""

    from_country: str
    to_country: str
    vehicle_type: str
    price: float
    currency: str
    price_unit: PriceUnit = PriceUnit.PER_VEHICLE
    min_price: Optional[float] = None

    def matches(self, from_country: str, to_country: str, vehicle_type: str) -> bool:
        return (
            self.from_country == from_country
            and self.to_country == to_country
            and self.vehicle_type == vehicle_type
        )


@dataclass(frozen=True, slots=True)
class AdditionalFee:
    name: str
    amount: float
    type: FeeType
    description: Optional[str] = None


@dataclass(frozen=True, slots=True)
class InsuranceOption:
    name: str
    coverage_limit: float
    price: float
    currency: str
    description: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TransportProvider:
    """A logistics provider with its route pricing.

    ``additional_fees`` is an ordered sequence: percentage fees are evaluated
    against the running total, so reordering the list changes quoted prices.
    """

    provider_id: str
    name: str
    operating_countries: frozenset[str]
    base_rates: tuple[BaseRate, ...] = ()
    additional_fees: tuple[AdditionalFee, ...] = ()
    insurance_options: tuple[InsuranceOption, ...] = ()
    services_offered: tuple[str, ...] = ()
    description: Optional[str] = None
    average_rating: Optional[float] = None
    review_count: int = 0
    is_active: bool = True
    is_preferred: bool = False

    def find_base_rate(self, from_country: str, to_country: str, vehicle_type: str) -> Optional[BaseRate]:
        """Return the first base rate matching the tuple."""
        for rate in self.base_rates:
            if rate.matches(from_country, to_country, vehicle_type):
                return rate
        return None

    def operates_in(self, *countries: str) -> bool:
        return all(country in self.operating_countries for country in countries)

    def find_insurance_option(self, name: str) -> Optional[InsuranceOption]:
        return next((option for option in self.insurance_options if option.name == name), None)


@dataclass(frozen=True, slots=True)
class Currency:
    code: str
    name: str
    exchange_rate: float
    decimals: int = 2
    symbol: Optional[str] = None
    is_active: bool = True
    is_default: bool = False


@dataclass(frozen=True, slots=True)
class Conversion:
    converted_amount: float
    exchange_rate: float
    from_code: str
    to_code: str


@dataclass(frozen=True, slots=True)
class CustomsRequirement:
    country_code: str
    country_name: str
    carnet_required: bool = False
    temporary_import_period: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class InsuranceQuote:
    name: str
    coverage: float
    price: float
    currency: str


@dataclass(frozen=True, slots=True)
class AdditionalService:
    name: str
    description: str
    price: float


@dataclass(frozen=True, slots=True)
class Quote:
    provider_id: str
    provider_name: str
    price: float
    currency: str
    estimated_days: int
    insurance_options: tuple[InsuranceQuote, ...]
    additional_services: tuple[AdditionalService, ...]
    valid_until: datetime
