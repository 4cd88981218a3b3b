"""Route group exports."""

from . import bookings, health, quotes

__all__ = ["bookings", "health", "quotes"]
