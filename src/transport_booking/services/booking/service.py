"""Booking orchestration service."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable

from ...config import Settings, settings as default_settings
from ...data.customs_repository import CustomsReference
from ...data.providers_repository import ProviderCatalog
from ...errors import NotFoundError
from ...models.booking import BookingPage, TransportBooking
from ...persistence.bookings import BookingRepository
from ...schemas.bookings import (
    BookingCreateRequest,
    BookingFilters,
    CustomsClearanceRequest,
    DocumentRequest,
    NoteRequest,
    SortField,
    SortOrder,
    StatusUpdateRequest,
    TrackingUpdateRequest,
)
from ...timeutils import utc_now
from . import lifecycle
from .tracking import apply_tracking_update

logger = logging.getLogger(__name__)


def new_booking_id() -> str:
    return uuid.uuid4().hex


class BookingService:
    """Runs lifecycle operations as atomic read-modify-writes against the repository."""

    def __init__(
        self,
        repository: BookingRepository,
        catalog: ProviderCatalog,
        customs: CustomsReference,
        *,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_booking_id,
    ) -> None:
        self.repository = repository
        self.catalog = catalog
        self.customs = customs
        self.config = config or default_settings
        self.clock = clock
        self.id_factory = id_factory

    def create_booking(self, request: BookingCreateRequest) -> TransportBooking:
        provider = self.catalog.get_provider(request.provider_id)
        if provider is None:
            raise NotFoundError("Transport provider", request.provider_id)

        customs_info = None
        if request.pickup_details.country != request.delivery_details.country:
            customs_info = self.customs.lookup(request.delivery_details.country)

        booking = lifecycle.open_booking(
            request,
            booking_id=self.id_factory(),
            provider=provider,
            customs_info=customs_info,
            now=self.clock(),
            config=self.config,
        )
        stored = self.repository.add(booking)
        logger.info(
            f"Created booking {stored.booking_id} with provider {provider.provider_id} "
            f"({request.pickup_details.country}->{request.delivery_details.country})"
        )
        return stored

    def get_booking(self, booking_id: str) -> TransportBooking:
        booking = self.repository.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    def list_bookings(
        self,
        filters: BookingFilters | None = None,
        *,
        page: int = 1,
        limit: int | None = None,
        sort_field: SortField = "created_at",
        sort_order: SortOrder = "desc",
    ) -> BookingPage:
        return self.repository.search(
            filters or BookingFilters(),
            page=page,
            limit=limit or self.config.default_page_size,
            sort_field=sort_field,
            sort_order=sort_order,
        )

    def update_status(self, booking_id: str, change: StatusUpdateRequest) -> TransportBooking:
        def mutate(booking: TransportBooking) -> TransportBooking:
            return lifecycle.change_status(
                booking, change, now=self.clock(), enforce=self.config.enforce_transitions
            ).booking

        updated = self.repository.apply(booking_id, mutate)
        logger.info(f"Booking {booking_id} moved to {updated.status.value}")
        return updated

    def complete_customs_clearance(self, booking_id: str, details: CustomsClearanceRequest) -> TransportBooking:
        updated = self.repository.apply(
            booking_id,
            lambda booking: lifecycle.complete_customs_clearance(booking, details, now=self.clock()).booking,
        )
        logger.info(f"Customs clearance completed for booking {booking_id} (status {updated.status.value})")
        return updated

    def update_tracking(self, booking_id: str, update: TrackingUpdateRequest) -> TransportBooking:
        return self.repository.apply(
            booking_id,
            lambda booking: apply_tracking_update(booking, update, now=self.clock()).booking,
        )

    def add_document(self, booking_id: str, document: DocumentRequest) -> TransportBooking:
        return self.repository.apply(
            booking_id,
            lambda booking: lifecycle.add_document(booking, document, now=self.clock()),
        )

    def add_note(self, booking_id: str, note: NoteRequest) -> TransportBooking:
        return self.repository.apply(
            booking_id,
            lambda booking: lifecycle.add_note(booking, note, now=self.clock()),
        )
