"""Booking persistence.

Every write goes through ``apply``: a read-modify-write of one booking that
is serialized per booking, so concurrent lifecycle calls never drop each
other's ledger entries.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Protocol

from ..config import settings
from ..errors import ConcurrencyConflictError, NotFoundError, TransportError
from ..models.booking import BookingPage, TransportBooking
from ..schemas.bookings import BookingFilters, SortField, SortOrder
from ..serde import booking_from_dict, booking_to_dict

logger = logging.getLogger(__name__)

Mutation = Callable[[TransportBooking], TransportBooking]

BOOKINGS_TABLE = "transport_bookings"


class BookingRepository(Protocol):
    def add(self, booking: TransportBooking) -> TransportBooking: ...

    def get(self, booking_id: str) -> TransportBooking | None: ...

    def apply(self, booking_id: str, mutate: Mutation) -> TransportBooking: ...

    def search(
        self,
        filters: BookingFilters,
        *,
        page: int = 1,
        limit: int = 20,
        sort_field: SortField = "created_at",
        sort_order: SortOrder = "desc",
    ) -> BookingPage: ...


def _in_range(value: datetime | None, after: datetime | None, before: datetime | None) -> bool:
    if value is None:
        return False
    if after is not None and value < after:
        return False
    if before is not None and value > before:
        return False
    return True


def matches_filters(booking: TransportBooking, filters: BookingFilters) -> bool:
    exact = {
        "vehicle_id": booking.vehicle_id,
        "auction_id": booking.auction_id,
        "buyer_id": booking.buyer_id,
        "seller_id": booking.seller_id,
        "provider_id": booking.provider_id,
        "pickup_country": booking.pickup_details.country,
        "delivery_country": booking.delivery_details.country,
    }
    for name, actual in exact.items():
        expected = getattr(filters, name)
        if expected is not None and expected != actual:
            return False

    if filters.statuses and booking.status not in filters.statuses:
        return False

    if filters.created_after or filters.created_before:
        if not _in_range(booking.created_at, filters.created_after, filters.created_before):
            return False

    if filters.scheduled_after or filters.scheduled_before:
        scheduled = (booking.pickup_details.scheduled_date, booking.delivery_details.scheduled_date)
        if not any(_in_range(value, filters.scheduled_after, filters.scheduled_before) for value in scheduled):
            return False
    return True


def _sort_value(booking: TransportBooking, field: SortField) -> Any:
    if field == "status":
        return booking.status.value
    return getattr(booking, field)


class InMemoryBookingRepository:
    """Process-local store with one lock per booking."""

    def __init__(self) -> None:
        self._records: dict[str, TransportBooking] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, booking_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(booking_id, threading.Lock())

    def add(self, booking: TransportBooking) -> TransportBooking:
        stored = replace(booking, version=1)
        with self._registry_lock:
            if booking.booking_id in self._records:
                raise TransportError(f"Booking '{booking.booking_id}' already exists")
            self._records[booking.booking_id] = stored
        return stored

    def get(self, booking_id: str) -> TransportBooking | None:
        return self._records.get(booking_id)

    def apply(self, booking_id: str, mutate: Mutation) -> TransportBooking:
        with self._lock_for(booking_id):
            current = self._records.get(booking_id)
            if current is None:
                raise NotFoundError("Booking", booking_id)
            updated = replace(mutate(current), version=current.version + 1)
            self._records[booking_id] = updated
            return updated

    def search(
        self,
        filters: BookingFilters,
        *,
        page: int = 1,
        limit: int = 20,
        sort_field: SortField = "created_at",
        sort_order: SortOrder = "desc",
    ) -> BookingPage:
        matched = [booking for booking in list(self._records.values()) if matches_filters(booking, filters)]
        matched.sort(key=lambda booking: _sort_value(booking, sort_field), reverse=sort_order == "desc")
        offset = (page - 1) * limit
        return BookingPage(bookings=tuple(matched[offset : offset + limit]), total=len(matched), page=page, limit=limit)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def booking_to_row(booking: TransportBooking) -> dict[str, Any]:
    """Flatten the columns used for filtering next to the full JSON document."""
    return {
        "id": booking.booking_id,
        "version": booking.version,
        "status": booking.status.value,
        "vehicle_id": booking.vehicle_id,
        "auction_id": booking.auction_id,
        "buyer_id": booking.buyer_id,
        "seller_id": booking.seller_id,
        "provider_id": booking.provider_id,
        "pickup_country": booking.pickup_details.country,
        "delivery_country": booking.delivery_details.country,
        "pickup_scheduled": _iso(booking.pickup_details.scheduled_date),
        "delivery_scheduled": _iso(booking.delivery_details.scheduled_date),
        "created_at": _iso(booking.created_at),
        "updated_at": _iso(booking.updated_at),
        "document": booking_to_dict(booking),
    }


def booking_from_row(row: dict[str, Any]) -> TransportBooking:
    booking = booking_from_dict(row["document"])
    return replace(booking, version=int(row["version"]))


class SupabaseBookingRepository:
    """Bookings stored in Supabase, guarded by optimistic versioning.

    An update only lands when the stored ``version`` still equals the one that
    was read; otherwise the booking is re-read and the mutation re-applied.
    """

    def __init__(self, client: Any, *, max_attempts: int | None = None) -> None:
        self.client = client
        self.max_attempts = max_attempts or settings.booking_write_retries

    def _table(self):
        return self.client.table(BOOKINGS_TABLE)

    def add(self, booking: TransportBooking) -> TransportBooking:
        stored = replace(booking, version=1)
        self._table().insert(booking_to_row(stored)).execute()
        logger.info(f"Inserted booking {stored.booking_id}")
        return stored

    def get(self, booking_id: str) -> TransportBooking | None:
        response = self._table().select("*").eq("id", booking_id).limit(1).execute()
        if not response.data:
            return None
        return booking_from_row(response.data[0])

    def apply(self, booking_id: str, mutate: Mutation) -> TransportBooking:
        for attempt in range(1, self.max_attempts + 1):
            current = self.get(booking_id)
            if current is None:
                raise NotFoundError("Booking", booking_id)
            updated = replace(mutate(current), version=current.version + 1)
            response = (
                self._table()
                .update(booking_to_row(updated))
                .eq("id", booking_id)
                .eq("version", current.version)
                .execute()
            )
            if response.data:
                return updated
            logger.warning(
                f"Version conflict on booking {booking_id} (attempt {attempt}/{self.max_attempts}), retrying"
            )
        raise ConcurrencyConflictError(
            f"Booking '{booking_id}' changed concurrently {self.max_attempts} times; update abandoned"
        )

    def search(
        self,
        filters: BookingFilters,
        *,
        page: int = 1,
        limit: int = 20,
        sort_field: SortField = "created_at",
        sort_order: SortOrder = "desc",
    ) -> BookingPage:
        query = self._table().select("*", count="exact")
        for column in (
            "vehicle_id",
            "auction_id",
            "buyer_id",
            "seller_id",
            "provider_id",
            "pickup_country",
            "delivery_country",
        ):
            value = getattr(filters, column)
            if value is not None:
                query = query.eq(column, value)
        if filters.statuses:
            query = query.in_("status", [status.value for status in filters.statuses])
        if filters.created_after:
            query = query.gte("created_at", filters.created_after.isoformat())
        if filters.created_before:
            query = query.lte("created_at", filters.created_before.isoformat())
        if filters.scheduled_after or filters.scheduled_before:
            clauses = []
            for column in ("pickup_scheduled", "delivery_scheduled"):
                parts = []
                if filters.scheduled_after:
                    parts.append(f'{column}.gte."{filters.scheduled_after.isoformat()}"')
                if filters.scheduled_before:
                    parts.append(f'{column}.lte."{filters.scheduled_before.isoformat()}"')
                clauses.append(f"and({','.join(parts)})")
            query = query.or_(",".join(clauses))

        offset = (page - 1) * limit
        response = (
            query.order(sort_field, desc=sort_order == "desc")
            .range(offset, offset + limit - 1)
            .execute()
        )
        bookings = tuple(booking_from_row(row) for row in response.data or [])
        return BookingPage(bookings=bookings, total=response.count or 0, page=page, limit=limit)
