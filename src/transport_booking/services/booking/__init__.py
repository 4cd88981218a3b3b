"""Booking lifecycle exports."""

from .lifecycle import ALLOWED_TRANSITIONS, can_transition
from .service import BookingService

__all__ = ["ALLOWED_TRANSITIONS", "BookingService", "can_transition"]
