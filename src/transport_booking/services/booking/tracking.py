"""Append-only tracking ledger helpers."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from ...models.booking import StatusEntry, Tracking, TransportBooking, Transition
from ...schemas.bookings import TrackingUpdateRequest

BOOKING_CREATED = "Booking created"


def seed_tracking(now: datetime) -> Tracking:
    entry = StatusEntry(status=BOOKING_CREATED, timestamp=now, notes="Transport booking initiated")
    return Tracking(current_status=entry.status, status_history=(entry,))


def append_entry(tracking: Tracking, entry: StatusEntry) -> Tracking:
    """Return ``tracking`` with ``entry`` appended and the current fields mirroring it.

    The current location only moves when the entry carries one.
    """
    return replace(
        tracking,
        status_history=(*tracking.status_history, entry),
        current_status=entry.status,
        current_location=entry.location if entry.location else tracking.current_location,
    )


def apply_tracking_update(booking: TransportBooking, update: TrackingUpdateRequest, *, now: datetime) -> Transition:
    tracking = booking.tracking
    entry = None
    if update.status_update is not None:
        entry = StatusEntry(
            status=update.status_update.status,
            timestamp=now,
            location=update.status_update.location,
            notes=update.status_update.notes,
        )
        tracking = append_entry(tracking, entry)

    # explicitly supplied fields win over the values mirrored from the entry
    supplied = update.supplied_fields()
    if supplied:
        tracking = replace(tracking, **supplied)

    return Transition(booking=replace(booking, tracking=tracking, updated_at=now), entry=entry)
