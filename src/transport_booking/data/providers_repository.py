"""Provider catalog with a database-first loader, falling back to the JSON seed file."""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Iterable, Protocol, Sequence

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import TransportProvider
from ..serde import provider_from_dict, providers_from_rows

logger = logging.getLogger(__name__)


class ProviderCatalog(Protocol):
    def get_provider(self, provider_id: str) -> TransportProvider | None: ...

    def eligible_providers(
        self, from_country: str, to_country: str, vehicle_type: str
    ) -> list[TransportProvider]: ...


def _ranking_key(provider: TransportProvider) -> tuple[bool, float]:
    rating = provider.average_rating if provider.average_rating is not None else float("-inf")
    return (not provider.is_preferred, -rating)


def filter_eligible(
    providers: Iterable[TransportProvider],
    from_country: str,
    to_country: str,
    vehicle_type: str,
) -> list[TransportProvider]:
    """Active providers serving both countries with an exact base rate, preferred first then by rating."""
    from_country = from_country.upper()
    to_country = to_country.upper()
    eligible = [
        provider
        for provider in providers
        if provider.is_active
        and provider.operates_in(from_country, to_country)
        and provider.find_base_rate(from_country, to_country, vehicle_type) is not None
    ]
    # sorted() is stable, so ties keep catalog order
    return sorted(eligible, key=_ranking_key)


class InMemoryProviderCatalog:
    """Catalog over a fixed snapshot of providers."""

    def __init__(self, providers: Sequence[TransportProvider]) -> None:
        self._providers = tuple(providers)
        self._by_id = {provider.provider_id: provider for provider in self._providers}

    def __len__(self) -> int:
        return len(self._providers)

    def get_provider(self, provider_id: str) -> TransportProvider | None:
        return self._by_id.get(provider_id)

    def eligible_providers(self, from_country: str, to_country: str, vehicle_type: str) -> list[TransportProvider]:
        return filter_eligible(self._providers, from_country, to_country, vehicle_type)


def _load_providers_from_database() -> tuple[TransportProvider, ...] | None:
    """Load providers from Supabase. Returns None if the database is not available or empty."""
    supabase = get_supabase_client()
    if not supabase:
        return None

    try:
        response = supabase.table("transport_providers").select("*").execute()
        if not response.data:
            return None

        providers: list[TransportProvider] = []
        for row in response.data:
            try:
                providers.append(provider_from_dict(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid provider row {row.get('provider_id')}: {e}")
                continue
        return tuple(providers) if providers else None
    except Exception as e:
        logger.debug(f"Provider query failed, falling back to file: {e}")
        return None


def _load_providers_from_file(source: Path | None = None) -> tuple[TransportProvider, ...]:
    path = source or settings.providers_file
    if not path.exists():
        raise FileNotFoundError(f"Provider catalog file not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"Provider catalog '{path}' must contain a JSON array.")
    return providers_from_rows(payload)


@functools.lru_cache(maxsize=1)
def load_providers(source: Path | None = None) -> tuple[TransportProvider, ...]:
    """Load the provider catalog snapshot (database first, then the seed file)."""
    providers = _load_providers_from_database()
    if providers:
        logger.info(f"Loaded {len(providers)} transport providers from database")
        return providers
    providers = _load_providers_from_file(source)
    logger.info(f"Loaded {len(providers)} transport providers from {source or settings.providers_file}")
    return providers
