"""Conversion between domain dataclasses and plain JSON-compatible dicts."""

from __future__ import annotations

from typing import Any, Iterable

from pydantic import TypeAdapter

from .models.booking import TransportBooking
from .models.domain import Currency, CustomsRequirement, TransportProvider

_booking_adapter = TypeAdapter(TransportBooking)
_provider_adapter = TypeAdapter(TransportProvider)
_currency_adapter = TypeAdapter(Currency)
_customs_adapter = TypeAdapter(CustomsRequirement)


def booking_to_dict(booking: TransportBooking) -> dict[str, Any]:
    return _booking_adapter.dump_python(booking, mode="json")


def booking_from_dict(data: dict[str, Any]) -> TransportBooking:
    return _booking_adapter.validate_python(data)


def provider_from_dict(data: dict[str, Any]) -> TransportProvider:
    d2 = dict(data)
    # Catalog rows use upper-case country codes; seed files are not always consistent.
    d2["operating_countries"] = frozenset(str(code).upper() for code in d2.get("operating_countries") or ())
    rates = []
    for rate in d2.get("base_rates") or ():
        rate = dict(rate)
        rate["from_country"] = str(rate["from_country"]).upper()
        rate["to_country"] = str(rate["to_country"]).upper()
        rate["currency"] = str(rate["currency"]).upper()
        rates.append(rate)
    d2["base_rates"] = rates
    return _provider_adapter.validate_python(d2)


def providers_from_rows(rows: Iterable[dict[str, Any]]) -> tuple[TransportProvider, ...]:
    return tuple(provider_from_dict(row) for row in rows)


def currency_from_dict(data: dict[str, Any]) -> Currency:
    d2 = dict(data)
    d2["code"] = str(d2["code"]).upper()
    return _currency_adapter.validate_python(d2)


def customs_from_dict(data: dict[str, Any]) -> CustomsRequirement:
    d2 = dict(data)
    d2["country_code"] = str(d2["country_code"]).upper()
    return _customs_adapter.validate_python(d2)
