import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from transport_booking.config import Settings
from transport_booking.errors import ConcurrencyConflictError, NotFoundError, PreconditionFailedError
from transport_booking.models.booking import BookingStatus
from transport_booking.persistence.bookings import (
    InMemoryBookingRepository,
    SupabaseBookingRepository,
    booking_from_row,
    booking_to_row,
)
from transport_booking.schemas.bookings import (
    BookingFilters,
    CustomsClearanceRequest,
    NoteRequest,
    StatusUpdateRequest,
    TrackingUpdateRequest,
)
from transport_booking.services.booking import BookingService


class FakeQuery:
    """Minimal stand-in for the Supabase query builder over an in-process row store."""

    def __init__(self, table: "FakeTable") -> None:
        self.table = table
        self.filters: list[tuple[str, object]] = []
        self.operation = "select"
        self.payload = None

    def select(self, *columns, count=None):
        self.operation = "select"
        return self

    def insert(self, row):
        self.operation = "insert"
        self.payload = row
        return self

    def update(self, row):
        self.operation = "update"
        self.payload = row
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def limit(self, count):
        return self

    def _matches(self, row) -> bool:
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        if self.operation == "insert":
            self.table.rows[self.payload["id"]] = dict(self.payload)
            return SimpleNamespace(data=[self.payload], count=None)
        if self.operation == "update":
            self.table.before_update()
            matched = [row for row in self.table.rows.values() if self._matches(row)]
            for row in matched:
                self.table.rows[row["id"]] = dict(self.payload)
            return SimpleNamespace(data=[self.payload] if matched else [], count=None)
        rows = [row for row in self.table.rows.values() if self._matches(row)]
        return SimpleNamespace(data=rows, count=len(rows))


class FakeTable:
    def __init__(self) -> None:
        self.rows: dict[str, dict] = {}
        self.interference = 0

    def before_update(self) -> None:
        # Simulates another writer bumping the version between read and write.
        if self.interference:
            self.interference -= 1
            for row in self.rows.values():
                row["version"] += 1


class FakeSupabase:
    def __init__(self) -> None:
        self.bookings = FakeTable()

    def table(self, name: str) -> FakeQuery:
        assert name == "transport_bookings"
        return FakeQuery(self.bookings)


class RecordingQuery:
    """Records builder calls so the generated search query can be asserted."""

    def __init__(self, rows) -> None:
        self.calls: list[tuple] = []
        self.rows = rows

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return record

    def execute(self):
        return SimpleNamespace(data=self.rows, count=len(self.rows))


@pytest.fixture
def service(catalog, customs, clock) -> BookingService:
    counter = iter(range(1, 1000))
    return BookingService(
        InMemoryBookingRepository(),
        catalog,
        customs,
        clock=clock,
        id_factory=lambda: f"bk-{next(counter)}",
    )


def test_create_booking_persists_version_one(service: BookingService, booking_request) -> None:
    booking = service.create_booking(booking_request())

    assert booking.booking_id == "bk-1"
    assert booking.version == 1
    assert service.get_booking("bk-1") == booking
    assert booking.customs_clearance.notes == "Import requirements for Serbia"


def test_create_booking_with_unknown_provider(service: BookingService, booking_request) -> None:
    with pytest.raises(NotFoundError, match="Transport provider 'ghost' not found"):
        service.create_booking(booking_request(provider_id="ghost"))


def test_operations_on_missing_booking(service: BookingService) -> None:
    with pytest.raises(NotFoundError):
        service.get_booking("nope")
    with pytest.raises(NotFoundError, match="Booking 'nope' not found"):
        service.update_status("nope", StatusUpdateRequest(status="quoted"))
    with pytest.raises(NotFoundError):
        service.add_note("nope", NoteRequest(author="ops", content="hello"))


def test_every_write_bumps_version(service: BookingService, booking_request, clock) -> None:
    booking = service.create_booking(booking_request())
    clock.advance(hours=1)

    updated = service.update_status(booking.booking_id, StatusUpdateRequest(status="quoted"))
    tracked = service.update_tracking(booking.booking_id, TrackingUpdateRequest(tracking_number="TRK-1"))

    assert updated.version == 2
    assert tracked.version == 3
    assert tracked.updated_at == clock.now
    assert tracked.tracking.tracking_number == "TRK-1"


def test_rejected_transition_leaves_booking_unchanged(service: BookingService, booking_request) -> None:
    booking = service.create_booking(booking_request())

    with pytest.raises(PreconditionFailedError):
        service.update_status(booking.booking_id, StatusUpdateRequest(status="in_transit"))

    assert service.get_booking(booking.booking_id) == booking


def test_customs_precondition_leaves_booking_unchanged(service: BookingService, booking_request) -> None:
    booking = service.create_booking(booking_request(delivery_country="DE"))
    details = CustomsClearanceRequest(clearance_date=datetime(2026, 3, 5, tzinfo=timezone.utc), customs_office="x")

    with pytest.raises(PreconditionFailedError):
        service.complete_customs_clearance(booking.booking_id, details)

    assert service.get_booking(booking.booking_id) == booking


def test_transition_enforcement_follows_settings(catalog, customs, clock, booking_request) -> None:
    lenient = BookingService(
        InMemoryBookingRepository(),
        catalog,
        customs,
        config=Settings(enforce_transitions=False),
        clock=clock,
        id_factory=lambda: "bk-lenient",
    )
    booking = lenient.create_booking(booking_request())

    assert lenient.update_status(booking.booking_id, StatusUpdateRequest(status="delivered")).status == BookingStatus.DELIVERED


def test_concurrent_updates_keep_every_entry(service: BookingService, booking_request) -> None:
    booking = service.create_booking(booking_request())
    service.update_status(booking.booking_id, StatusUpdateRequest(status="quoted"))
    workers = 16
    barrier = threading.Barrier(workers)

    def report(index: int) -> None:
        barrier.wait()
        service.update_tracking(
            booking.booking_id,
            TrackingUpdateRequest.model_validate({"status_update": {"status": f"checkpoint-{index}"}}),
        )

    threads = [threading.Thread(target=report, args=(index,)) for index in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    stored = service.get_booking(booking.booking_id)
    statuses = [entry.status for entry in stored.tracking.status_history]
    assert len(statuses) == 2 + workers
    assert {f"checkpoint-{index}" for index in range(workers)} <= set(statuses)
    assert stored.version == 2 + workers


def test_list_bookings_filters_sorts_and_paginates(service: BookingService, booking_request, clock) -> None:
    for index in range(5):
        service.create_booking(booking_request(buyer_id="buyer-1" if index % 2 == 0 else "buyer-2"))
        clock.advance(minutes=10)
    service.create_booking(booking_request(delivery_country="MK", buyer_id="buyer-3"))
    service.update_status("bk-1", StatusUpdateRequest(status="cancelled"))

    first_page = service.list_bookings(BookingFilters(buyer_id="buyer-1"), page=1, limit=2)
    second_page = service.list_bookings(BookingFilters(buyer_id="buyer-1"), page=2, limit=2)
    cancelled = service.list_bookings(BookingFilters(statuses=[BookingStatus.CANCELLED]))
    macedonia = service.list_bookings(BookingFilters(delivery_country="mk"))
    oldest_first = service.list_bookings(sort_order="asc", limit=3)

    assert first_page.total == 3
    assert first_page.total_pages == 2
    assert [booking.booking_id for booking in first_page.bookings] == ["bk-5", "bk-3"]
    assert [booking.booking_id for booking in second_page.bookings] == ["bk-1"]
    assert [booking.booking_id for booking in cancelled.bookings] == ["bk-1"]
    assert [booking.booking_id for booking in macedonia.bookings] == ["bk-6"]
    assert [booking.booking_id for booking in oldest_first.bookings] == ["bk-1", "bk-2", "bk-3"]


def test_list_bookings_by_creation_window(service: BookingService, booking_request, clock) -> None:
    start = clock.now
    service.create_booking(booking_request())
    clock.advance(days=2)
    service.create_booking(booking_request())

    recent = service.list_bookings(BookingFilters(created_after=start + timedelta(days=1)))
    naive_window = service.list_bookings(
        BookingFilters(created_before=start.replace(tzinfo=None) + timedelta(hours=1))
    )

    assert [booking.booking_id for booking in recent.bookings] == ["bk-2"]
    assert [booking.booking_id for booking in naive_window.bookings] == ["bk-1"]


def test_list_bookings_by_scheduled_date(service: BookingService, booking_request) -> None:
    pickup = {
        "address": "1 Main Street",
        "city": "Munich",
        "country": "DE",
        "contact_name": "Dispatch",
        "contact_phone": "+49",
        "scheduled_date": "2026-04-01T08:00:00Z",
    }
    service.create_booking(booking_request(pickup_details=pickup))
    service.create_booking(booking_request())

    scheduled = service.list_bookings(
        BookingFilters(
            scheduled_after=datetime(2026, 3, 31, tzinfo=timezone.utc),
            scheduled_before=datetime(2026, 4, 2, tzinfo=timezone.utc),
        )
    )

    assert [booking.booking_id for booking in scheduled.bookings] == ["bk-1"]


def test_row_mapping_round_trip(service: BookingService, booking_request) -> None:
    booking = service.create_booking(booking_request(options={"door_to_door": True}))

    row = booking_to_row(booking)

    assert row["id"] == booking.booking_id
    assert row["status"] == "quote_requested"
    assert row["delivery_country"] == "RS"
    assert booking_from_row(row) == booking


def test_supabase_repository_retries_on_version_conflict(service: BookingService, booking_request) -> None:
    client = FakeSupabase()
    repository = SupabaseBookingRepository(client, max_attempts=3)
    booking = repository.add(service.create_booking(booking_request()))
    client.bookings.interference = 1
    calls = []

    def mutate(current):
        calls.append(current.version)
        return replace(current, status=BookingStatus.QUOTED)

    updated = repository.apply(booking.booking_id, mutate)

    assert calls == [1, 2]
    assert updated.version == 3
    assert repository.get(booking.booking_id).status == BookingStatus.QUOTED


def test_supabase_repository_gives_up_after_max_attempts(service: BookingService, booking_request) -> None:
    client = FakeSupabase()
    repository = SupabaseBookingRepository(client, max_attempts=2)
    booking = repository.add(service.create_booking(booking_request()))
    client.bookings.interference = 5

    with pytest.raises(ConcurrencyConflictError):
        repository.apply(booking.booking_id, lambda current: current)


def test_supabase_repository_missing_booking() -> None:
    repository = SupabaseBookingRepository(FakeSupabase())

    assert repository.get("missing") is None
    with pytest.raises(NotFoundError):
        repository.apply("missing", lambda current: current)


def test_supabase_search_builds_filtered_query(service: BookingService, booking_request) -> None:
    row = booking_to_row(service.create_booking(booking_request()))
    query = RecordingQuery([row])
    client = SimpleNamespace(table=lambda name: SimpleNamespace(select=lambda *args, **kwargs: query))
    repository = SupabaseBookingRepository(client)

    result = repository.search(
        BookingFilters(buyer_id="buyer-1", statuses=[BookingStatus.BOOKED, BookingStatus.QUOTED]),
        page=2,
        limit=10,
        sort_field="updated_at",
        sort_order="asc",
    )

    assert ("eq", ("buyer_id", "buyer-1"), {}) in query.calls
    assert ("in_", ("status", ["booked", "quoted"]), {}) in query.calls
    assert ("order", ("updated_at",), {"desc": False}) in query.calls
    assert ("range", (10, 19), {}) in query.calls
    assert result.total == 1
    assert result.bookings[0].booking_id == row["id"]
