"""Exchange-rate table used to convert quote prices between currencies."""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Iterable, Protocol

from ..config import settings
from ..db.supabase import get_supabase_client
from ..errors import CurrencyNotFoundError
from ..models.domain import Conversion, Currency
from ..serde import currency_from_dict

logger = logging.getLogger(__name__)


class CurrencyConverter(Protocol):
    def convert(self, amount: float, from_code: str, to_code: str) -> Conversion: ...


def _usable(currency: Currency) -> bool:
    return currency.is_active and currency.exchange_rate > 0


class ExchangeRateTable:
    """Converts through the base currency: every rate is units per one base unit.

    Inactive currencies and rows without a positive rate are treated as unknown.
    """

    def __init__(self, currencies: Iterable[Currency]) -> None:
        self._currencies = {currency.code.upper(): currency for currency in currencies}

    def get(self, code: str) -> Currency | None:
        currency = self._currencies.get(code.upper())
        if currency is None or not _usable(currency):
            return None
        return currency

    def codes(self) -> list[str]:
        return sorted(code for code, currency in self._currencies.items() if _usable(currency))

    def default_currency(self) -> Currency | None:
        active = [currency for currency in self._currencies.values() if _usable(currency)]
        return next((currency for currency in active if currency.is_default), None) or self.get(
            settings.base_currency
        )

    def convert(self, amount: float, from_code: str, to_code: str) -> Conversion:
        source = self.get(from_code)
        if source is None:
            raise CurrencyNotFoundError(from_code)
        target = self.get(to_code)
        if target is None:
            raise CurrencyNotFoundError(to_code)

        rate = target.exchange_rate / source.exchange_rate
        return Conversion(
            converted_amount=round(amount * rate, target.decimals),
            exchange_rate=round(rate, 6),
            from_code=source.code,
            to_code=target.code,
        )


def _load_currencies_from_database() -> tuple[Currency, ...] | None:
    supabase = get_supabase_client()
    if not supabase:
        return None
    try:
        response = supabase.table("currencies").select("*").execute()
        if not response.data:
            return None
        return tuple(currency_from_dict(row) for row in response.data)
    except Exception as e:
        logger.debug(f"Currency query failed, falling back to file: {e}")
        return None


def _load_currencies_from_file(source: Path | None = None) -> tuple[Currency, ...]:
    path = source or settings.currencies_file
    if not path.exists():
        raise FileNotFoundError(f"Currency file not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    return tuple(currency_from_dict(row) for row in payload)


@functools.lru_cache(maxsize=1)
def load_exchange_rates(source: Path | None = None) -> ExchangeRateTable:
    currencies = _load_currencies_from_database() or _load_currencies_from_file(source)
    for currency in currencies:
        if currency.exchange_rate <= 0:
            logger.warning(f"Currency {currency.code} has exchange rate {currency.exchange_rate}; it will be ignored")
    logger.info(f"Loaded exchange rates for {len(currencies)} currencies")
    return ExchangeRateTable(currencies)
