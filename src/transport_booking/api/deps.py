"""Service wiring for the API routes.

Each collaborator is built once per process; tests replace them through
``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends

from ..data.currency_repository import ExchangeRateTable, load_exchange_rates
from ..data.customs_repository import CustomsDirectory, load_customs_directory
from ..data.providers_repository import InMemoryProviderCatalog, ProviderCatalog, load_providers
from ..db.supabase import get_supabase_client
from ..persistence.bookings import BookingRepository, InMemoryBookingRepository, SupabaseBookingRepository
from ..services.booking import BookingService
from ..services.quotes import QuoteEngine

logger = logging.getLogger(__name__)


@lru_cache()
def get_provider_catalog() -> ProviderCatalog:
    return InMemoryProviderCatalog(load_providers())


@lru_cache()
def get_currency_converter() -> ExchangeRateTable:
    return load_exchange_rates()


@lru_cache()
def get_customs_reference() -> CustomsDirectory:
    return load_customs_directory()


@lru_cache()
def get_booking_repository() -> BookingRepository:
    client = get_supabase_client()
    if client is None:
        logger.warning("Bookings are kept in memory; they will not survive a restart")
        return InMemoryBookingRepository()
    return SupabaseBookingRepository(client)


def get_quote_engine(
    catalog: ProviderCatalog = Depends(get_provider_catalog),
    converter: ExchangeRateTable = Depends(get_currency_converter),
    customs: CustomsDirectory = Depends(get_customs_reference),
) -> QuoteEngine:
    return QuoteEngine(catalog, converter, customs)


def get_booking_service(
    repository: BookingRepository = Depends(get_booking_repository),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
    customs: CustomsDirectory = Depends(get_customs_reference),
) -> BookingService:
    return BookingService(repository, catalog, customs)
