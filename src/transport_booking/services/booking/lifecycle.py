"""Booking state machine expressed as pure functions.

Every operation takes an immutable booking and a request and returns a new
booking (plus the ledger entry it appended, where one was appended). Nothing
here touches storage; the booking service persists the results.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from ...config import Settings, settings as default_settings
from ...errors import PreconditionFailedError
from ...models.booking import (
    BookingDocument,
    BookingNote,
    BookingStatus,
    BorderCrossing,
    CustomsClearance,
    CustomsStatus,
    Insurance,
    PriceLine,
    Pricing,
    RouteDetails,
    StatusEntry,
    TransportBooking,
    Transition,
    Waypoint,
    WaypointType,
)
from ...models.domain import CustomsRequirement, TransportProvider
from ...schemas.bookings import (
    BookingCreateRequest,
    BookingOptions,
    CustomsClearanceRequest,
    DocumentRequest,
    NoteRequest,
    StatusUpdateRequest,
)
from .tracking import append_entry, seed_tracking

S = BookingStatus

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    S.DRAFT: frozenset({S.QUOTE_REQUESTED, S.CANCELLED}),
    S.QUOTE_REQUESTED: frozenset({S.QUOTED, S.CANCELLED, S.FAILED}),
    S.QUOTED: frozenset({S.BOOKED, S.QUOTE_REQUESTED, S.CANCELLED}),
    S.BOOKED: frozenset({S.PICKUP_SCHEDULED, S.CANCELLED, S.FAILED}),
    S.PICKUP_SCHEDULED: frozenset({S.IN_TRANSIT, S.CANCELLED, S.FAILED}),
    S.IN_TRANSIT: frozenset({S.CUSTOMS_CLEARANCE, S.DELIVERED, S.FAILED}),
    S.CUSTOMS_CLEARANCE: frozenset({S.IN_TRANSIT, S.FAILED}),
    S.DELIVERED: frozenset(),
    S.CANCELLED: frozenset(),
    S.FAILED: frozenset(),
}

CUSTOMS_COMPLETED_NOTE = "Customs clearance completed, continuing to destination"


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Whether ``target`` may follow ``current``; repeating a non-terminal status is allowed."""
    if current == target:
        return not current.is_terminal
    return target in ALLOWED_TRANSITIONS[current]


def _route_skeleton(request: BookingCreateRequest) -> RouteDetails:
    pickup = request.pickup_details
    delivery = request.delivery_details
    return RouteDetails(
        border_crossings=(BorderCrossing(from_country=pickup.country, to_country=delivery.country),),
        waypoints=(
            Waypoint(type=WaypointType.PICKUP, location=f"{pickup.city}, {pickup.country}"),
            Waypoint(type=WaypointType.CUSTOMS, location=f"Border {pickup.country}-{delivery.country}"),
            Waypoint(type=WaypointType.DELIVERY, location=f"{delivery.city}, {delivery.country}"),
        ),
    )


def _selected_services(options: BookingOptions, cross_border: bool, config: Settings) -> tuple[PriceLine, ...]:
    lines = []
    if options.customs_handling:
        lines.append(PriceLine("Customs Handling", config.customs_handling_fee if cross_border else 0.0))
    if options.door_to_door:
        lines.append(PriceLine("Door-to-Door", config.door_to_door_fee))
    if options.expedited:
        lines.append(PriceLine("Expedited", config.expedited_fee))
    return tuple(lines)


def _insurance(options: BookingOptions, provider: TransportProvider) -> Insurance:
    if not options.request_insurance:
        return Insurance(is_insured=False)
    if options.insurance_option is None:
        return Insurance(is_insured=True)
    option = provider.find_insurance_option(options.insurance_option)
    if option is None:
        raise PreconditionFailedError(
            f"Provider '{provider.provider_id}' has no insurance option '{options.insurance_option}'"
        )
    return Insurance(
        is_insured=True,
        provider=provider.name,
        coverage_amount=option.coverage_limit,
        currency=option.currency,
        premium=option.price,
    )


def open_booking(
    request: BookingCreateRequest,
    *,
    booking_id: str,
    provider: TransportProvider,
    customs_info: CustomsRequirement | None,
    now: datetime,
    config: Settings = default_settings,
) -> TransportBooking:
    """Build a new booking in ``quote_requested`` with a seeded ledger."""
    cross_border = request.pickup_details.country != request.delivery_details.country
    created_by = request.created_by or request.buyer_id

    customs = None
    route = None
    if cross_border:
        customs = CustomsClearance(
            required=True,
            status=CustomsStatus.NOT_STARTED,
            notes=f"Import requirements for {customs_info.country_name}" if customs_info else None,
        )
        route = _route_skeleton(request)

    notes: tuple[BookingNote, ...] = ()
    if request.options.special_instructions:
        notes = (BookingNote(author=created_by, date=now, content=request.options.special_instructions),)

    return TransportBooking(
        booking_id=booking_id,
        vehicle_id=request.vehicle_id,
        buyer_id=request.buyer_id,
        seller_id=request.seller_id,
        provider_id=provider.provider_id,
        auction_id=request.auction_id,
        status=BookingStatus.QUOTE_REQUESTED,
        pickup_details=request.pickup_details,
        delivery_details=request.delivery_details,
        vehicle_details=request.vehicle_details,
        route_details=route,
        pricing=Pricing(
            quote_amount=request.pricing.quote_amount,
            currency=request.pricing.currency,
            breakdown=_selected_services(request.options, cross_border, config),
        ),
        tracking=seed_tracking(now),
        customs_clearance=customs,
        insurance=_insurance(request.options, provider),
        notes=notes,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )


def change_status(
    booking: TransportBooking,
    change: StatusUpdateRequest,
    *,
    now: datetime,
    enforce: bool = True,
) -> Transition:
    target = BookingStatus(change.status)
    if enforce and not can_transition(booking.status, target):
        raise PreconditionFailedError(
            f"Booking '{booking.booking_id}' cannot move from {booking.status.value} to {target.value}"
        )

    entry = StatusEntry(status=target.value, timestamp=now, location=change.location, notes=change.notes)
    tracking = append_entry(booking.tracking, entry)
    customs = booking.customs_clearance

    if target == BookingStatus.DELIVERED:
        tracking = replace(tracking, actual_delivery=now)
    elif target == BookingStatus.CUSTOMS_CLEARANCE and customs is not None:
        customs = replace(customs, status=CustomsStatus.IN_PROGRESS)

    updated = replace(booking, status=target, tracking=tracking, customs_clearance=customs, updated_at=now)
    return Transition(booking=updated, entry=entry)


def complete_customs_clearance(
    booking: TransportBooking,
    details: CustomsClearanceRequest,
    *,
    now: datetime,
) -> Transition:
    customs = booking.customs_clearance
    if customs is None or not customs.required:
        raise PreconditionFailedError(f"Booking '{booking.booking_id}': customs clearance not required")

    customs = replace(
        customs,
        status=CustomsStatus.COMPLETED,
        clearance_date=details.clearance_date,
        customs_office=details.customs_office,
        customs_agent=details.customs_agent or customs.customs_agent,
        duties=details.duties or customs.duties,
        documents=(*customs.documents, *details.documents),
        notes=details.notes or customs.notes,
    )
    updated = replace(booking, customs_clearance=customs, updated_at=now)

    if booking.status != BookingStatus.CUSTOMS_CLEARANCE:
        return Transition(booking=updated)

    entry = StatusEntry(status=BookingStatus.IN_TRANSIT.value, timestamp=now, notes=CUSTOMS_COMPLETED_NOTE)
    updated = replace(
        updated,
        status=BookingStatus.IN_TRANSIT,
        tracking=append_entry(updated.tracking, entry),
    )
    return Transition(booking=updated, entry=entry)


def add_document(booking: TransportBooking, document: DocumentRequest, *, now: datetime) -> TransportBooking:
    record = BookingDocument(type=document.type, filename=document.filename, url=document.url, upload_date=now)
    return replace(booking, documents=(*booking.documents, record), updated_at=now)


def add_note(booking: TransportBooking, note: NoteRequest, *, now: datetime) -> TransportBooking:
    record = BookingNote(author=note.author, date=now, content=note.content, is_public=note.is_public)
    return replace(booking, notes=(*booking.notes, record), updated_at=now)
