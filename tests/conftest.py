from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from transport_booking.data.currency_repository import ExchangeRateTable
from transport_booking.data.customs_repository import CustomsDirectory
from transport_booking.data.providers_repository import InMemoryProviderCatalog
from transport_booking.models.domain import (
    AdditionalFee,
    BaseRate,
    Currency,
    CustomsRequirement,
    FeeType,
    InsuranceOption,
    TransportProvider,
)
from transport_booking.schemas.bookings import BookingCreateRequest

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: Any) -> None:
        self.now = self.now + timedelta(**delta)


def _provider(
    provider_id: str,
    rates: list[BaseRate],
    fees: tuple[AdditionalFee, ...] = (),
    rating: float | None = None,
    preferred: bool = False,
    active: bool = True,
    countries: tuple[str, ...] = ("DE", "AT", "RS", "MK", "CH"),
) -> TransportProvider:
    return TransportProvider(
        provider_id=provider_id,
        name=f"Provider {provider_id}",
        operating_countries=frozenset(countries),
        base_rates=tuple(rates),
        additional_fees=fees,
        insurance_options=(InsuranceOption(name="Basic cover", coverage_limit=20000, price=45, currency="EUR"),),
        average_rating=rating,
        is_active=active,
        is_preferred=preferred,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def make_provider() -> Callable[..., TransportProvider]:
    return _provider


@pytest.fixture
def catalog() -> InMemoryProviderCatalog:
    return InMemoryProviderCatalog(
        [
            _provider(
                "balkan",
                [
                    BaseRate("DE", "RS", "sedan", 500, "EUR"),
                    BaseRate("DE", "MK", "sedan", 500, "EUR"),
                    BaseRate("DE", "DE", "sedan", 200, "EUR"),
                ],
                fees=(AdditionalFee(name="Fuel surcharge", amount=10, type=FeeType.PERCENTAGE),),
                rating=4.6,
                preferred=True,
            ),
            _provider("danube", [BaseRate("DE", "RS", "sedan", 54000, "RSD")], rating=4.1),
        ]
    )


@pytest.fixture
def exchange_rates() -> ExchangeRateTable:
    return ExchangeRateTable(
        [
            Currency(code="EUR", name="Euro", exchange_rate=1.0, is_default=True),
            Currency(code="USD", name="US Dollar", exchange_rate=1.09),
            Currency(code="RSD", name="Serbian Dinar", exchange_rate=117.20),
            Currency(code="GBP", name="British Pound", exchange_rate=0.85),
        ]
    )


@pytest.fixture
def customs() -> CustomsDirectory:
    return CustomsDirectory(
        [
            CustomsRequirement(country_code="RS", country_name="Serbia", carnet_required=True),
            CustomsRequirement(country_code="MK", country_name="North Macedonia", carnet_required=False),
        ]
    )


def _location(city: str, country: str) -> dict[str, Any]:
    return {
        "address": f"1 Main Street, {city}",
        "city": city,
        "country": country,
        "contact_name": "Dispatch",
        "contact_phone": "+49 30 1234567",
    }


@pytest.fixture
def booking_request() -> Callable[..., BookingCreateRequest]:
    """Factory for create-booking payloads; keyword overrides replace top-level fields."""

    def build(pickup_country: str = "DE", delivery_country: str = "RS", **overrides: Any) -> BookingCreateRequest:
        payload: dict[str, Any] = {
            "vehicle_id": "veh-1",
            "buyer_id": "buyer-1",
            "seller_id": "seller-1",
            "provider_id": "balkan",
            "auction_id": "auc-1",
            "pickup_details": _location("Munich", pickup_country),
            "delivery_details": _location("Belgrade", delivery_country),
            "vehicle_details": {"make": "VW", "model": "Golf", "year": 2019, "vin": "WVWZZZ1KZAW000001"},
            "pricing": {"quote_amount": 550.0, "currency": "eur"},
        }
        payload.update(overrides)
        return BookingCreateRequest.model_validate(payload)

    return build
