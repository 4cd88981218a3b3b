"""Cross-border vehicle transport quoting and booking service.

Quotes are priced per eligible provider and converted into the requested
currency; bookings move through a validated state machine with an
append-only tracking ledger and an optional customs-clearance sub-flow.
"""

__version__ = "0.1.0"
