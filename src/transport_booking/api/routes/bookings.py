"""Booking lifecycle endpoints."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import ConcurrencyConflictError, NotFoundError, PreconditionFailedError, TransportError
from ...models.booking import BookingStatus, TransportBooking
from ...schemas.bookings import (
    BookingCreateRequest,
    BookingFilters,
    BookingListResponse,
    CustomsClearanceRequest,
    DocumentRequest,
    NoteRequest,
    SortField,
    SortOrder,
    StatusUpdateRequest,
    TrackingUpdateRequest,
)
from ...services.booking import BookingService
from ..deps import get_booking_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _raise_http(exc: TransportError) -> NoReturn:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, (PreconditionFailedError, ConcurrencyConflictError)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    logger.exception(f"Booking operation failed: {exc}")
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("", response_model=TransportBooking, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreateRequest,
    service: BookingService = Depends(get_booking_service),
) -> TransportBooking:
    try:
        return service.create_booking(payload)
    except TransportError as exc:
        _raise_http(exc)


@router.get("", response_model=BookingListResponse, status_code=status.HTTP_200_OK)
def list_bookings(
    vehicle_id: str | None = Query(default=None),
    auction_id: str | None = Query(default=None),
    buyer_id: str | None = Query(default=None),
    seller_id: str | None = Query(default=None),
    provider_id: str | None = Query(default=None),
    status_filter: List[BookingStatus] = Query(default=[], alias="status", description="One or more statuses"),
    pickup_country: str | None = Query(default=None),
    delivery_country: str | None = Query(default=None),
    created_after: datetime | None = Query(default=None),
    created_before: datetime | None = Query(default=None),
    scheduled_after: datetime | None = Query(default=None),
    scheduled_before: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1, description="1-based page index"),
    limit: int | None = Query(default=None, ge=1, le=200),
    sort_field: SortField = Query(default="created_at"),
    sort_order: SortOrder = Query(default="desc"),
    service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    filters = BookingFilters(
        vehicle_id=vehicle_id,
        auction_id=auction_id,
        buyer_id=buyer_id,
        seller_id=seller_id,
        provider_id=provider_id,
        statuses=status_filter,
        pickup_country=pickup_country,
        delivery_country=delivery_country,
        created_after=created_after,
        created_before=created_before,
        scheduled_after=scheduled_after,
        scheduled_before=scheduled_before,
    )
    result = service.list_bookings(filters, page=page, limit=limit, sort_field=sort_field, sort_order=sort_order)
    return BookingListResponse(
        bookings=list(result.bookings),
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/{booking_id}", response_model=TransportBooking, status_code=status.HTTP_200_OK)
def get_booking(booking_id: str, service: BookingService = Depends(get_booking_service)) -> TransportBooking:
    try:
        return service.get_booking(booking_id)
    except TransportError as exc:
        _raise_http(exc)


@router.post("/{booking_id}/status", response_model=TransportBooking, status_code=status.HTTP_200_OK)
def update_status(
    booking_id: str,
    payload: StatusUpdateRequest,
    service: BookingService = Depends(get_booking_service),
) -> TransportBooking:
    try:
        return service.update_status(booking_id, payload)
    except TransportError as exc:
        _raise_http(exc)


@router.post("/{booking_id}/customs/complete", response_model=TransportBooking, status_code=status.HTTP_200_OK)
def complete_customs(
    booking_id: str,
    payload: CustomsClearanceRequest,
    service: BookingService = Depends(get_booking_service),
) -> TransportBooking:
    try:
        return service.complete_customs_clearance(booking_id, payload)
    except TransportError as exc:
        _raise_http(exc)


@router.patch("/{booking_id}/tracking", response_model=TransportBooking, status_code=status.HTTP_200_OK)
def update_tracking(
    booking_id: str,
    payload: TrackingUpdateRequest,
    service: BookingService = Depends(get_booking_service),
) -> TransportBooking:
    try:
        return service.update_tracking(booking_id, payload)
    except TransportError as exc:
        _raise_http(exc)


@router.post("/{booking_id}/documents", response_model=TransportBooking, status_code=status.HTTP_201_CREATED)
def add_document(
    booking_id: str,
    payload: DocumentRequest,
    service: BookingService = Depends(get_booking_service),
) -> TransportBooking:
    try:
        return service.add_document(booking_id, payload)
    except TransportError as exc:
        _raise_http(exc)


@router.post("/{booking_id}/notes", response_model=TransportBooking, status_code=status.HTTP_201_CREATED)
def add_note(
    booking_id: str,
    payload: NoteRequest,
    service: BookingService = Depends(get_booking_service),
) -> TransportBooking:
    try:
        return service.add_note(booking_id, payload)
    except TransportError as exc:
        _raise_http(exc)
