"""Domain errors raised by the quoting and booking services."""

from __future__ import annotations


class TransportError(Exception):
    """Base class for every error raised by this package."""


class NotFoundError(TransportError):
    """A referenced provider or booking does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} '{identifier}' not found")
        self.kind = kind
        self.identifier = identifier


class PreconditionFailedError(TransportError):
    """The booking is not in a state that allows the requested operation."""


class ConcurrencyConflictError(TransportError):
    """Another writer kept changing the booking while this update was applied."""


class CurrencyNotFoundError(TransportError):
    def __init__(self, code: str) -> None:
        super().__init__(f"Currency not found: {code}")
        self.code = code
