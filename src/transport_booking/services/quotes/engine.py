"""Transport quote computation."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Sequence

from ...config import Settings, settings as default_settings
from ...data.currency_repository import CurrencyConverter
from ...data.customs_repository import CustomsReference
from ...data.providers_repository import ProviderCatalog
from ...errors import CurrencyNotFoundError
from ...models.domain import (
    AdditionalFee,
    AdditionalService,
    FeeType,
    InsuranceQuote,
    Quote,
    RunningCondition,
    TransportProvider,
)
from ...schemas.quotes import QuoteRequest
from ...timeutils import utc_now

logger = logging.getLogger(__name__)


def apply_fees(price: float, fees: Sequence[AdditionalFee]) -> float:
    """Accumulate fees in list order.

    Percentage fees apply to the running total, not the base rate, so the
    order of ``fees`` changes the result.
    """
    for fee in fees:
        if fee.type == FeeType.FIXED:
            price += fee.amount
        else:
            price += price * fee.amount / 100
    return price


def estimate_lead_days(
    pickup_country: str,
    delivery_country: str,
    customs: CustomsReference,
    config: Settings = default_settings,
) -> int:
    if pickup_country == delivery_country:
        return config.domestic_lead_days
    requirement = customs.lookup(delivery_country)
    if requirement is not None and requirement.carnet_required:
        return config.carnet_lead_days
    return config.cross_border_lead_days


def additional_services(domestic: bool, config: Settings = default_settings) -> tuple[AdditionalService, ...]:
    return (
        AdditionalService(
            name="Customs Handling",
            description="We handle all customs paperwork and fees",
            price=0.0 if domestic else config.customs_handling_fee,
        ),
        AdditionalService(
            name="Door-to-Door",
            description="Pickup and delivery to exact addresses",
            price=config.door_to_door_fee,
        ),
        AdditionalService(
            name="Expedited",
            description="Priority handling and faster delivery",
            price=config.expedited_fee,
        ),
    )


class QuoteEngine:
    """Prices a route across every eligible provider.

    Collaborators are injected so the engine can run against in-memory fakes.
    """

    def __init__(
        self,
        catalog: ProviderCatalog,
        converter: CurrencyConverter,
        customs: CustomsReference,
        *,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.catalog = catalog
        self.converter = converter
        self.customs = customs
        self.config = config or default_settings
        self.clock = clock

    def provider_price(self, provider: TransportProvider, request: QuoteRequest) -> tuple[float, str] | None:
        """Price in the rate currency before conversion, or None without a matching base rate."""
        rate = provider.find_base_rate(request.pickup_country, request.delivery_country, request.vehicle_type)
        if rate is None:
            return None

        price = apply_fees(rate.price, provider.additional_fees)
        if request.running_condition == RunningCondition.NON_RUNNING:
            price *= self.config.non_running_surcharge
        return price, rate.currency

    def _convert(self, price: float, source: str, target: str, provider_id: str) -> tuple[float, str]:
        if source == target:
            return price, target
        try:
            return self.converter.convert(price, source, target).converted_amount, target
        except CurrencyNotFoundError as exc:
            logger.warning(
                f"Currency conversion {source}->{target} failed for provider {provider_id}: {exc}. "
                f"Quoting in {source}."
            )
            return price, source

    def _quote_provider(
        self,
        provider: TransportProvider,
        request: QuoteRequest,
        currency: str,
        estimated_days: int,
        valid_until: datetime,
    ) -> Quote | None:
        priced = self.provider_price(provider, request)
        if priced is None:
            return None
        price, rate_currency = priced
        price, quoted_currency = self._convert(price, rate_currency, currency, provider.provider_id)

        return Quote(
            provider_id=provider.provider_id,
            provider_name=provider.name,
            price=round(price, 2),
            currency=quoted_currency,
            estimated_days=estimated_days,
            insurance_options=tuple(
                InsuranceQuote(
                    name=option.name,
                    coverage=option.coverage_limit,
                    price=option.price,
                    currency=option.currency,
                )
                for option in provider.insurance_options
            ),
            additional_services=additional_services(request.is_domestic, self.config),
            valid_until=valid_until,
        )

    def get_quotes(self, request: QuoteRequest) -> list[Quote]:
        providers = self.catalog.eligible_providers(
            request.pickup_country, request.delivery_country, request.vehicle_type
        )
        if not providers:
            logger.info(
                f"No eligible providers for {request.pickup_country}->{request.delivery_country} "
                f"({request.vehicle_type})"
            )
            return []

        currency = request.currency or self.config.base_currency
        estimated_days = estimate_lead_days(
            request.pickup_country, request.delivery_country, self.customs, self.config
        )
        valid_until = self.clock() + timedelta(days=self.config.quote_validity_days)

        def quote(provider: TransportProvider) -> Quote | None:
            return self._quote_provider(provider, request, currency, estimated_days, valid_until)

        if len(providers) == 1:
            results = [quote(providers[0])]
        else:
            workers = min(self.config.quote_max_workers, len(providers))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                # map() yields in submission order, which keeps the eligibility ranking
                results = list(executor.map(quote, providers))

        quotes = [result for result in results if result is not None]
        logger.info(
            f"Generated {len(quotes)} quotes for {request.pickup_country}->{request.delivery_country} "
            f"in {currency}"
        )
        return quotes
