"""Per-country import requirements."""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Iterable, Protocol

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import CustomsRequirement
from ..serde import customs_from_dict

logger = logging.getLogger(__name__)


class CustomsReference(Protocol):
    def lookup(self, country_code: str) -> CustomsRequirement | None: ...


class CustomsDirectory:
    """Lookup over customs records; inactive or unknown countries have no special requirement."""

    def __init__(self, records: Iterable[CustomsRequirement]) -> None:
        self._records = {record.country_code.upper(): record for record in records}

    def lookup(self, country_code: str) -> CustomsRequirement | None:
        record = self._records.get(country_code.upper())
        if record is None or not record.is_active:
            return None
        return record


def _load_customs_from_database() -> tuple[CustomsRequirement, ...] | None:
    supabase = get_supabase_client()
    if not supabase:
        return None
    try:
        response = supabase.table("customs_regulations").select("*").execute()
        if not response.data:
            return None
        return tuple(customs_from_dict(row) for row in response.data)
    except Exception as e:
        logger.debug(f"Customs query failed, falling back to file: {e}")
        return None


def _load_customs_from_file(source: Path | None = None) -> tuple[CustomsRequirement, ...]:
    path = source or settings.customs_file
    if not path.exists():
        logger.warning(f"Customs file not found: {path}; no country will require a carnet")
        return tuple()
    payload = json.loads(path.read_text(encoding="utf-8"))
    return tuple(customs_from_dict(row) for row in payload)


@functools.lru_cache(maxsize=1)
def load_customs_directory(source: Path | None = None) -> CustomsDirectory:
    records = _load_customs_from_database() or _load_customs_from_file(source)
    return CustomsDirectory(records)
