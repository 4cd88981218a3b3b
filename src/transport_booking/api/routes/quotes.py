"""Quote and provider endpoints."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...data.providers_repository import ProviderCatalog
from ...models.domain import TransportProvider
from ...schemas.quotes import QuoteModel, QuoteRequest, QuoteResponse
from ...services.quotes import QuoteEngine
from ..deps import get_provider_catalog, get_quote_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["quotes"])


@router.post("/quotes", response_model=QuoteResponse, status_code=status.HTTP_200_OK)
def request_quotes(payload: QuoteRequest, engine: QuoteEngine = Depends(get_quote_engine)) -> QuoteResponse:
    try:
        quotes = engine.get_quotes(payload)
    except Exception as exc:
        logger.exception(f"Error generating quotes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate quotes: {str(exc)}",
        ) from exc
    return QuoteResponse(
        route=f"{payload.pickup_country}-{payload.delivery_country}",
        currency=payload.currency or engine.config.base_currency,
        quotes=[QuoteModel.model_validate(asdict(quote)) for quote in quotes],
    )


@router.get("/providers/eligible", response_model=List[TransportProvider], status_code=status.HTTP_200_OK)
def eligible_providers(
    pickup_country: str = Query(..., min_length=2, max_length=3),
    delivery_country: str = Query(..., min_length=2, max_length=3),
    vehicle_type: str = Query(default="sedan"),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
) -> List[TransportProvider]:
    return catalog.eligible_providers(pickup_country.upper(), delivery_country.upper(), vehicle_type)


@router.get("/providers/{provider_id}", response_model=TransportProvider, status_code=status.HTTP_200_OK)
def get_provider(provider_id: str, catalog: ProviderCatalog = Depends(get_provider_catalog)) -> TransportProvider:
    provider = catalog.get_provider(provider_id)
    if provider is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Transport provider '{provider_id}' not found")
    return provider
